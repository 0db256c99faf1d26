"""
Tests for the command line interface, dood!

Commands run against a real configuration file with the in-memory store;
Manager.fromConfig is patched so that consecutive commands share one store.
"""

import json
from unittest.mock import patch

import pytest

from s3conveyor.main import main, parse_arguments, parseCategory
from s3conveyor.manager import Manager

CONFIG_TOML = """
[conveyor]
store = "memory"
bucket = "media"
"""


@pytest.fixture
def configPath(tmp_path, monkeypatch):
    """Write a memory-store config and run from its directory, dood!"""
    monkeypatch.chdir(tmp_path)
    path = tmp_path / "config.toml"
    path.write_text(CONFIG_TOML)
    return str(path)


@pytest.fixture
def cli(configPath, conveyor):
    """Run CLI commands against the shared memory-backed conveyor"""
    manager = Manager(conveyor)

    def run(*argv: str) -> int:
        with patch.object(Manager, "fromConfig", return_value=manager), patch("s3conveyor.main.initLogging"):
            return main(["-c", configPath, *argv])

    return run


class TestArguments:
    """Test argument parsing"""

    def testParseCategory(self):
        assert parseCategory(None) is None
        assert parseCategory("users/42") == ["users", "42"]

    def testCommandRequired(self):
        """Test a command is required unless printing config, dood!"""
        with pytest.raises(SystemExit):
            parse_arguments([])

    def testConfigPathIsAbsolute(self):
        args = parse_arguments(["-c", "config.toml", "--config-dir", "conf.d", "url", "a.txt"])

        assert args.config.endswith("config.toml")
        assert args.config.startswith("/")
        assert all(dirPath.startswith("/") for dirPath in args.config_dir)


class TestCommands:
    """Test CLI commands"""

    def testUploadThenExists(self, cli, memoryStore, tmp_path, capsys):
        """Test uploading a file prints its URL, dood!"""
        source = tmp_path / "notes.txt"
        source.write_bytes(b"notes")

        assert cli("upload", str(source), "--category", "docs", "--mime-type", "text/plain") == 0
        url = capsys.readouterr().out.strip()
        assert url.startswith("http://media.s3.amazonaws.com/docs/")
        assert url.endswith(".txt")

        name = url.rsplit("/", 1)[1]
        assert memoryStore.get("media", f"docs/{name}") == b"notes"
        assert cli("exists", name, "--category", "docs") == 0
        assert capsys.readouterr().out.strip() == "true"

    def testExistsMissing(self, cli, capsys):
        assert cli("exists", "missing.txt") == 1
        assert capsys.readouterr().out.strip() == "false"

    def testGetToFile(self, cli, conveyor, tmp_path):
        """Test get writes the object to the output file"""
        conveyor.uploadRaw(b"payload", "p.bin")
        output = tmp_path / "out.bin"

        assert cli("get", "p.bin", "-o", str(output)) == 0
        assert output.read_bytes() == b"payload"

    def testGetMissing(self, cli):
        assert cli("get", "missing.bin") == 1

    def testInfo(self, cli, conveyor, capsys):
        """Test info prints object metadata as JSON, dood!"""
        conveyor.uploadRaw(b"abc", "a.txt", "text/plain")

        assert cli("info", "a.txt") == 0
        info = json.loads(capsys.readouterr().out)
        assert info["file_name"] == "a.txt"
        assert info["mime_type"] == "text/plain"
        assert info["size"]["bytes"] == 3

    def testInfoMissing(self, cli):
        """Test info of a missing object fails with exit code 1"""
        assert cli("info", "missing.txt") == 1

    def testDelete(self, cli, conveyor, memoryStore):
        conveyor.uploadRaw(b"abc", "a.txt")
        conveyor.setFileCategory("docs")
        conveyor.uploadRaw(b"abc", "b.txt")

        assert cli("delete", "b.txt", "--category", "docs") == 0
        assert ("media", "docs/b.txt") not in memoryStore.objects
        assert cli("delete", "b.txt", "--category", "docs") == 1

    def testUrl(self, cli, capsys):
        """Test url prints the public URL, dood!"""
        assert cli("url", "logo.png", "--category", "users/42", "--secure") == 0
        assert capsys.readouterr().out.strip() == "https://media.s3.amazonaws.com/users/42/logo.png"

    def testSync(self, cli, memoryStore, tmp_path):
        source = tmp_path / "site"
        source.mkdir()
        (source / "index.html").write_bytes(b"<html/>")

        assert cli("sync", str(source), "--category", "www") == 0
        assert memoryStore.get("media", "www/index.html") == b"<html/>"

    def testSyncMissingDirectory(self, cli, tmp_path):
        assert cli("sync", str(tmp_path / "missing")) == 1


class TestMain:
    """Test main() without patched configuration"""

    def testPrintConfig(self, configPath, capsys):
        """Test --print-config prints the loaded configuration, dood!"""
        with patch("s3conveyor.main.initLogging"):
            assert main(["-c", configPath, "--print-config"]) == 0

        config = json.loads(capsys.readouterr().out)
        assert config["conveyor"]["bucket"] == "media"

    def testMissingConfig(self, tmp_path, monkeypatch):
        """Test missing configuration exits with code 1"""
        monkeypatch.chdir(tmp_path)
        assert main(["-c", str(tmp_path / "missing.toml"), "url", "a.txt"]) == 1

    def testUrlWithRealConfig(self, configPath, capsys):
        with patch("s3conveyor.main.initLogging"):
            assert main(["-c", configPath, "url", "a.txt"]) == 0
        assert capsys.readouterr().out.strip() == "http://media.s3.amazonaws.com/a.txt"
