"""
Comprehensive tests for the Configuration Manager and conveyor factories.

This module tests configuration loading, merging, environment substitution,
validation and building object stores and conveyors from configuration.
"""

import logging
import os
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

from s3conveyor.config.manager import ConfigManager, loadDotEnv, substituteEnvVars
from s3conveyor.exceptions import ConveyorConfigError, NotFoundError
from s3conveyor.factory import createConveyor, createObjectStore, createRetryPolicy
from s3conveyor.logging_utils import getLogLevelByStr, initLogging
from s3conveyor.models import DEFAULT_CACHE_LENGTH, RetryPolicy
from s3conveyor.transport.memory import InMemoryObjectStore
from s3conveyor.transport.s3 import S3ObjectStore

# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def tempDir(tmp_path) -> Path:
    """Provide a temporary directory for test files."""
    return tmp_path


@pytest.fixture
def sampleConfigToml():
    """Provide sample valid TOML configuration."""
    return """
[conveyor]
store = "memory"
bucket = "media"
category = ["users", "42"]
cache-length = 3600
concurrency = 2

[conveyor.retry]
max-attempts = 5
backoff-factor = 0.1

[logging]
level = "INFO"
"""


@pytest.fixture
def defaultsToml():
    """Provide default configuration TOML."""
    return """
[conveyor]
store = "s3"
bucket = "default-bucket"
visibility = "private"

[conveyor.s3]
region = "us-east-1"
"""


# ============================================================================
# Helper Functions
# ============================================================================


def createConfigFile(directory: Path, filename: str, content: str) -> Path:
    """Create a TOML config file in the specified directory."""
    filePath = directory / filename
    filePath.parent.mkdir(parents=True, exist_ok=True)
    filePath.write_text(content)
    return filePath


def loadConfig(tempDir: Path, configPath: Path, configDirs=None) -> ConfigManager:
    """Load configuration without picking up a .env from the working directory."""
    return ConfigManager(str(configPath), configDirs=configDirs, dotEnvFile=str(tempDir / "missing.env"))


# ============================================================================
# Configuration Loading Tests
# ============================================================================


class TestConfigManager:
    """Test ConfigManager loading and validation."""

    def testLoadSingleConfigFile(self, tempDir, sampleConfigToml):
        """Test loading configuration from single TOML file."""
        configPath = createConfigFile(tempDir, "config.toml", sampleConfigToml)

        manager = loadConfig(tempDir, configPath)

        assert manager.getConveyorConfig()["bucket"] == "media"
        assert manager.getConveyorConfig()["retry"]["max-attempts"] == 5
        assert manager.getLoggingConfig() == {"level": "INFO"}
        assert manager.get("missing", "default") == "default"

    def testMergeConfigDirs(self, tempDir, sampleConfigToml, defaultsToml):
        """Test config directory files are merged over the main file."""
        configPath = createConfigFile(tempDir, "config.toml", sampleConfigToml)
        configDir = tempDir / "conf.d"
        createConfigFile(configDir, "nested/defaults.toml", defaultsToml)

        manager = loadConfig(tempDir, configPath, [str(configDir)])
        config = manager.getConveyorConfig()

        assert config["bucket"] == "default-bucket"
        assert config["visibility"] == "private"
        assert config["cache-length"] == 3600
        assert config["retry"]["max-attempts"] == 5
        assert config["s3"]["region"] == "us-east-1"

    def testConfigDirsWithoutMainFile(self, tempDir, defaultsToml):
        """Test config directories alone are enough."""
        configDir = tempDir / "conf.d"
        createConfigFile(configDir, "defaults.toml", defaultsToml)

        manager = loadConfig(tempDir, tempDir / "nonexistent.toml", [str(configDir)])
        assert manager.getConveyorConfig()["bucket"] == "default-bucket"

    def testMissingConfigFile(self, tempDir):
        """Test missing config file without directories raises ConveyorConfigError."""
        with pytest.raises(ConveyorConfigError, match="not found"):
            loadConfig(tempDir, tempDir / "nonexistent.toml")

    def testInvalidTomlSyntax(self, tempDir):
        configPath = createConfigFile(tempDir, "config.toml", "[conveyor\nbucket = 'x'\n")

        with pytest.raises(ConveyorConfigError):
            loadConfig(tempDir, configPath)

    def testInvalidTomlInConfigDirIsSkipped(self, tempDir, sampleConfigToml):
        """Test broken files in config directories are skipped."""
        configPath = createConfigFile(tempDir, "config.toml", sampleConfigToml)
        configDir = tempDir / "conf.d"
        createConfigFile(configDir, "broken.toml", "[conveyor\n")

        manager = loadConfig(tempDir, configPath, [str(configDir)])
        assert manager.getConveyorConfig()["bucket"] == "media"

    def testMissingBucket(self, tempDir):
        """Test configuration without a bucket is rejected."""
        configPath = createConfigFile(tempDir, "config.toml", "[conveyor]\nstore = 'memory'\n")

        with pytest.raises(ConveyorConfigError, match="Bucket"):
            loadConfig(tempDir, configPath)

    def testEnvSubstitution(self, tempDir, monkeypatch):
        """Test ${VAR} placeholders are replaced from the environment."""
        monkeypatch.setenv("CONVEYOR_TEST_BUCKET", "env-bucket")
        monkeypatch.delenv("CONVEYOR_TEST_UNSET", raising=False)
        configPath = createConfigFile(
            tempDir,
            "config.toml",
            '[conveyor]\nbucket = "${CONVEYOR_TEST_BUCKET}"\n[conveyor.s3]\nkey-id = "${CONVEYOR_TEST_UNSET}"\n',
        )

        manager = loadConfig(tempDir, configPath)

        assert manager.getConveyorConfig()["bucket"] == "env-bucket"
        assert manager.getConveyorConfig()["s3"]["key-id"] == "${CONVEYOR_TEST_UNSET}"

    def testDotEnvFile(self, tempDir, monkeypatch):
        """Test variables from the dotenv file are available for substitution."""
        monkeypatch.delenv("CONVEYOR_DOTENV_BUCKET", raising=False)
        dotEnv = tempDir / ".env"
        dotEnv.write_text('# comment\nCONVEYOR_DOTENV_BUCKET="dotenv-bucket"\n')
        configPath = createConfigFile(tempDir, "config.toml", '[conveyor]\nbucket = "${CONVEYOR_DOTENV_BUCKET}"\n')

        try:
            manager = ConfigManager(str(configPath), dotEnvFile=str(dotEnv))
            assert manager.getConveyorConfig()["bucket"] == "dotenv-bucket"
        finally:
            os.environ.pop("CONVEYOR_DOTENV_BUCKET", None)


class TestEnvHelpers:
    """Test environment helpers."""

    def testSubstituteNested(self, monkeypatch):
        monkeypatch.setenv("CONVEYOR_TEST_VALUE", "v")

        ret = substituteEnvVars({"a": ["${CONVEYOR_TEST_VALUE}", 1], "b": {"c": "x-${CONVEYOR_TEST_VALUE}"}})
        assert ret == {"a": ["v", 1], "b": {"c": "x-v"}}

    def testLoadDotEnvDoesNotOverride(self, tempDir, monkeypatch):
        """Test existing environment variables win over the dotenv file."""
        monkeypatch.setenv("CONVEYOR_TEST_EXISTING", "original")
        dotEnv = tempDir / ".env"
        dotEnv.write_text("CONVEYOR_TEST_EXISTING=from-file\nINVALID_LINE\n")

        ret = loadDotEnv(str(dotEnv))

        assert ret == {"CONVEYOR_TEST_EXISTING": "from-file"}
        assert os.environ["CONVEYOR_TEST_EXISTING"] == "original"


# ============================================================================
# Factory Tests
# ============================================================================


class TestFactories:
    """Test building stores, policies and conveyors from configuration."""

    def testCreateMemoryStore(self):
        store = createObjectStore({"store": "memory", "bucket": "media"})

        assert isinstance(store, InMemoryObjectStore)
        assert store.bucketExists("media")

    def testCreateS3Store(self):
        """Test S3 store gets endpoint, credentials and timeouts from [conveyor.s3]."""
        s3Config = {
            "endpoint": "https://storage.example.com",
            "region": "ru-central1",
            "key-id": "id",
            "key-secret": "secret",
            "connect-timeout": 2,
            "read-timeout": 20,
        }
        with patch("s3conveyor.transport.s3.boto3.client") as mockClient:
            store = createObjectStore({"bucket": "media", "s3": s3Config})

        assert isinstance(store, S3ObjectStore)
        kwargs = mockClient.call_args[1]
        assert kwargs["endpoint_url"] == "https://storage.example.com"
        assert kwargs["region_name"] == "ru-central1"
        assert kwargs["aws_access_key_id"] == "id"
        assert kwargs["config"].connect_timeout == 2.0
        assert kwargs["config"].read_timeout == 20.0

    def testCreateS3StoreDefaultCredentials(self):
        """Test missing credentials fall back to the default chain."""
        with patch("s3conveyor.transport.s3.boto3.client") as mockClient:
            createObjectStore({"bucket": "media"})

        kwargs = mockClient.call_args[1]
        assert kwargs["aws_access_key_id"] is None
        assert kwargs["aws_secret_access_key"] is None
        assert kwargs["endpoint_url"] is None

    def testHalfCredentialsRejected(self):
        with pytest.raises(ConveyorConfigError, match="key-id and key-secret"):
            createObjectStore({"bucket": "media", "s3": {"key-id": "id"}})

    def testUnknownStore(self):
        with pytest.raises(ConveyorConfigError, match="Unknown object store type"):
            createObjectStore({"store": "ftp", "bucket": "media"})

    def testCreateRetryPolicy(self):
        """Test retry policy from [conveyor.retry]."""
        assert createRetryPolicy({}) == RetryPolicy()
        assert createRetryPolicy({"max-attempts": 5, "backoff-factor": 1, "max-delay": 10}) == RetryPolicy(
            maxAttempts=5, backoffFactor=1.0, maxDelay=10.0
        )

    def testInvalidRetryPolicy(self):
        with pytest.raises(ConveyorConfigError):
            createRetryPolicy({"max-attempts": 0})
        with pytest.raises(ConveyorConfigError):
            createRetryPolicy({"backoff-factor": "fast"})

    def testCreateConveyor(self, tempDir, sampleConfigToml):
        """Test conveyor built from a configuration file."""
        configPath = createConfigFile(tempDir, "config.toml", sampleConfigToml)

        conveyor = createConveyor(loadConfig(tempDir, configPath))

        assert conveyor.bucket == "media"
        assert conveyor.fileCategory == ("users", "42")
        assert conveyor.cacheLength == 3600
        assert conveyor.concurrency == 2
        assert conveyor.visibility == "public-read"
        assert conveyor.retryPolicy == RetryPolicy(maxAttempts=5, backoffFactor=0.1)
        assert isinstance(conveyor.store, InMemoryObjectStore)

    def testCreateConveyorDefaults(self):
        configManager = Mock()
        configManager.getConveyorConfig.return_value = {"store": "memory", "bucket": "media"}

        conveyor = createConveyor(configManager)

        assert conveyor.cacheLength == DEFAULT_CACHE_LENGTH
        assert conveyor.fileCategory is None

    def testCreateConveyorVerifyAccess(self):
        """Test verify-access checks the bucket at startup."""
        configManager = Mock()
        configManager.getConveyorConfig.return_value = {"store": "memory", "bucket": "media", "verify-access": True}
        assert createConveyor(configManager).bucket == "media"

        with patch.object(InMemoryObjectStore, "bucketExists", return_value=False):
            with pytest.raises(NotFoundError):
                createConveyor(configManager)

    def testCreateConveyorInvalidNumbers(self):
        configManager = Mock()
        configManager.getConveyorConfig.return_value = {"store": "memory", "bucket": "media", "concurrency": "many"}

        with pytest.raises(ConveyorConfigError):
            createConveyor(configManager)


# ============================================================================
# Logging Tests
# ============================================================================


class TestLogging:
    """Test logging configuration."""

    def testGetLogLevelByStr(self):
        assert getLogLevelByStr("debug") == logging.DEBUG
        assert getLogLevelByStr("WARNING") == logging.WARNING
        assert getLogLevelByStr("nonsense", logging.INFO) == logging.INFO

    def testInitLoggingQuietsAwsLoggers(self, tempDir):
        """Test AWS SDK loggers are kept at WARNING when the root is more verbose."""
        rootLogger = logging.getLogger()
        savedLevel = rootLogger.level
        savedHandlers = rootLogger.handlers[:]
        logFile = tempDir / "logs" / "conveyor.log"

        try:
            initLogging({"level": "DEBUG", "file": str(logFile), "logger": {"s3conveyor": {"level": "INFO"}}})

            assert rootLogger.level == logging.DEBUG
            assert logging.getLogger("botocore").level == logging.WARNING
            assert logging.getLogger("s3conveyor").level == logging.INFO
            assert logFile.parent.is_dir()
        finally:
            for handler in rootLogger.handlers[:]:
                rootLogger.removeHandler(handler)
                handler.close()
            for handler in savedHandlers:
                rootLogger.addHandler(handler)
            rootLogger.setLevel(savedLevel)
            logging.getLogger("s3conveyor").setLevel(logging.NOTSET)
