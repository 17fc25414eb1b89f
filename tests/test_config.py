"""Tests for configuration system."""

import os
import tempfile
import unittest
from io import BytesIO

from remotefile.config import Config, ConfigError, RemoteNotFoundError, ValidationError
from remotefile.config.remotes import LocalConfig, FtpConfig, SftpConfig


class TestConfigSystem(unittest.TestCase):
    """Test cases for the configuration system."""

    def setUp(self):
        """Set up test fixtures."""
        self.sample_config_data = {
            "local": {"type": "local", "root": "/srv/data"},
            "ftp": {
                "type": "ftp",
                "url": "ftp://example.com",
                "username": "testuser",
                "password": "testpass",
                "tls": False,
                "base_path": "/exports",
            },
            "sftp": {
                "type": "sftp",
                "url": "sftp.example.com",
                "port": 2222,
                "username": "user",
                "password": "pass",
            },
        }

    def create_config_file(self, data):
        """Create an in-memory TOML configuration file."""
        toml_content = ""
        for section, values in data.items():
            toml_content += f"[{section}]\n"
            for key, value in values.items():
                if isinstance(value, bool):
                    toml_content += f"{key} = {str(value).lower()}\n"
                elif isinstance(value, int):
                    toml_content += f"{key} = {value}\n"
                else:
                    toml_content += f'{key} = "{value}"\n'
            toml_content += "\n"

        return BytesIO(toml_content.encode())

    def test_config_from_file_success(self):
        """Test successful configuration loading from file."""
        config = Config.from_file(self.create_config_file(self.sample_config_data))

        self.assertIsInstance(config, Config)
        self.assertEqual(set(config.remotes), {"local", "ftp", "sftp"})
        self.assertEqual(config.get_warnings(), [])

    def test_config_from_file_none(self):
        """Test loading without a file."""
        with self.assertRaises(ConfigError):
            Config.from_file(None)

    def test_config_invalid_toml(self):
        """Test malformed TOML is reported as a configuration error."""
        with self.assertRaises(ConfigError):
            Config.from_file(BytesIO(b"[broken\nkey = "))

    def test_remote_types(self):
        """Test each table becomes the matching remote class."""
        config = Config.from_file(self.create_config_file(self.sample_config_data))

        local = config.get_remote("local")
        self.assertIsInstance(local, LocalConfig)
        self.assertEqual(local.root, "/srv/data")

        ftp = config.get_remote("ftp")
        self.assertIsInstance(ftp, FtpConfig)
        self.assertEqual(ftp.host, "example.com")
        self.assertEqual(ftp.port, 21)
        self.assertEqual(ftp.base_path, "/exports")
        self.assertFalse(ftp.tls)

        sftp = config.get_remote("sftp")
        self.assertIsInstance(sftp, SftpConfig)
        self.assertEqual(sftp.host, "sftp.example.com")
        self.assertEqual(sftp.port, 2222)

    def test_list_remotes(self):
        """Test listing remote names and types."""
        config = Config.from_file(self.create_config_file(self.sample_config_data))

        self.assertEqual(
            config.list_remotes(), {"local": "local", "ftp": "ftp", "sftp": "sftp"}
        )

    def test_get_remote_not_found(self):
        """Test requesting an undefined remote."""
        config = Config.from_file(self.create_config_file(self.sample_config_data))

        with self.assertRaises(RemoteNotFoundError) as cm:
            config.get_remote("nonexistent")

        self.assertIn("Available remotes", str(cm.exception))

    def test_invalid_remotes_skipped_with_warnings(self):
        """Test unusable tables are skipped and reported."""
        data = {
            "good": {"type": "local"},
            "untyped": {"url": "ftp.example.com"},
            "unknown": {"type": "gopher", "url": "gopher.example.com"},
            "badport": {"type": "ftp", "url": "ftp.example.com", "port": 70000},
            "nourl": {"type": "ftp"},
            "nokey": {"type": "sftp", "url": "sftp.example.com", "username": "u"},
        }

        config = Config.from_file(self.create_config_file(data))

        self.assertEqual(list(config.remotes), ["good"])
        warnings = config.get_warnings()
        self.assertEqual(len(warnings), 5)
        self.assertTrue(any("missing required 'type'" in w for w in warnings))
        self.assertTrue(any("unknown remote type 'gopher'" in w for w in warnings))

    def test_non_table_value_skipped(self):
        """Test top-level scalars are not remotes."""
        config = Config.from_file(BytesIO(b'version = 2\n\n[home]\ntype = "local"\n'))

        self.assertEqual(list(config.remotes), ["home"])
        self.assertEqual(len(config.get_warnings()), 1)

    def test_no_usable_remotes(self):
        """Test a file with no valid remote fails validation."""
        with self.assertRaises(ValidationError):
            Config.from_file(self.create_config_file({"bad": {"type": "ftp"}}))

    def test_warnings_copy(self):
        """Test the warnings accessor returns a copy."""
        config = Config.from_file(
            self.create_config_file({"a": {"type": "local"}, "b": {"type": "x"}})
        )

        config.get_warnings().clear()
        self.assertEqual(len(config.get_warnings()), 1)

    def test_skipped_remotes_logged(self):
        """Test each skipped table is logged as a warning."""
        with self.assertLogs("remotefile.config.base", level="WARNING") as cm:
            Config.from_file(
                self.create_config_file({"a": {"type": "local"}, "b": {"type": "x"}})
            )

        self.assertEqual(len(cm.records), 1)
        self.assertIn("Remote 'b'", cm.output[0])

    def test_load_from_path(self):
        """Test loading a configuration file by path."""
        with tempfile.TemporaryDirectory() as temp_dir:
            path = os.path.join(temp_dir, "remotes.toml")
            with open(path, "wb") as fp:
                fp.write(self.create_config_file(self.sample_config_data).getvalue())

            config = Config.load(path)

        self.assertEqual(len(config.remotes), 3)

    def test_load_missing_path(self):
        """Test loading a configuration file that does not exist."""
        with self.assertRaises(ConfigError):
            Config.load("/nonexistent/remotes.toml")

    def test_connect_named_remote(self):
        """Test building a filesystem for a named remote."""
        config = Config.from_file(self.create_config_file(self.sample_config_data))

        fs = config.connect("ftp")

        self.assertEqual(fs.name, "ftp")
        self.assertEqual(fs.session.username, "testuser")
        with self.assertRaises(RemoteNotFoundError):
            config.connect("nonexistent")


class TestRemoteConfigs(unittest.TestCase):
    """Test cases for individual remote configurations."""

    def test_ftp_defaults(self):
        """Test FTP defaults to anonymous login."""
        config = FtpConfig.from_dict("pub", {"url": "ftps://files.example.com/"})

        self.assertEqual(config.username, "anonymous")
        self.assertEqual(config.password, "anonymous@")
        self.assertEqual(config.host, "files.example.com")
        self.assertEqual(config.base_path, "/")

    def test_ftp_tls_must_be_bool(self):
        """Test TLS setting validation."""
        config = FtpConfig.from_dict("pub", {"url": "ftp.example.com", "tls": "yes"})

        with self.assertRaises(ValidationError):
            config.validate()

    def test_port_bounds(self):
        """Test port validation rejects out of range and boolean values."""
        for port in (0, 65536, True, "21"):
            with self.subTest(port=port):
                config = FtpConfig.from_dict("pub", {"url": "h", "port": port})
                with self.assertRaises(ValidationError):
                    config.validate()

    def test_sftp_requires_credentials(self):
        """Test SFTP needs a password or a key."""
        config = SftpConfig.from_dict("s", {"url": "sftp://h"})
        with self.assertRaises(ValidationError):
            config.validate()

        config = SftpConfig.from_dict("s", {"url": "sftp://h", "key_filename": "~/.ssh/id"})
        config.validate()
        self.assertEqual(config.host, "h")

    def test_url_host_drops_port_and_path(self):
        """Test the host excludes credentials, port and path from the URL."""
        sftp = SftpConfig.from_dict("s", {"url": "sftp://me@h.example.com/data"})
        ftp = FtpConfig.from_dict("f", {"url": "ftp://h:2121"})

        self.assertEqual(sftp.host, "h.example.com")
        self.assertEqual(sftp.base_path, "/data")
        self.assertEqual(ftp.host, "h")
        self.assertEqual(ftp.port, 2121)

    def test_table_values_override_url(self):
        """Test explicit port and base_path win over the URL."""
        config = FtpConfig.from_dict(
            "f", {"url": "ftp://h:2121/data", "port": 21, "base_path": "/exports"}
        )

        self.assertEqual(config.port, 21)
        self.assertEqual(config.base_path, "/exports")

    def test_ftps_url_enables_tls(self):
        """Test an ftps URL turns TLS on unless the table disables it."""
        self.assertTrue(FtpConfig.from_dict("f", {"url": "ftps://h"}).tls)
        self.assertFalse(FtpConfig.from_dict("f", {"url": "ftp://h"}).tls)
        self.assertFalse(FtpConfig.from_dict("f", {"url": "ftps://h", "tls": False}).tls)

    def test_url_scheme_and_port_checked(self):
        """Test a foreign scheme or a malformed port is rejected."""
        for url in ("sftp://h", "ftp://h:port", "ftp://h:70000"):
            with self.subTest(url=url):
                with self.assertRaises(ValidationError):
                    FtpConfig.from_dict("f", {"url": url})

    def test_local_root_must_be_string(self):
        """Test local root validation."""
        with self.assertRaises(ValidationError):
            LocalConfig.from_dict("l", {"root": 5}).validate()


if __name__ == "__main__":
    unittest.main()
