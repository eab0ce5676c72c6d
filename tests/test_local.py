"""Tests for deploydiag.local: configuration values and package inspection."""
import pytest

from deploydiag.local import EnvironmentTester, PackageTester, mask_value
from deploydiag.local.env import EMAIL_PATTERN


class TestMaskValue:
    def test_preview(self):
        assert mask_value("SG.1234567890abcdef", 5) == "SG.12..."

    def test_full(self):
        assert mask_value("8080", None) == "8080"


class TestEnvironmentTester:
    def test_explicit_mapping_only(self, monkeypatch):
        monkeypatch.setenv("FROM_PROCESS", "1")
        tester = EnvironmentTester(environ={'A': 'x'})
        assert tester.get('A') == 'x'
        assert tester.get('FROM_PROCESS') is None

    def test_env_file_fills_gaps(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("JWT_SECRET=from-file\nPORT=3000\nEMPTY=\n")
        monkeypatch.setenv("PORT", "8080")
        monkeypatch.delenv("JWT_SECRET", raising=False)

        tester = EnvironmentTester(env_file=env_file)

        assert tester.get('JWT_SECRET') == "from-file"
        # Real environment wins over the file
        assert tester.get('PORT') == "8080"
        assert tester.get('EMPTY') is None

    def test_missing_env_file_is_ignored(self, tmp_path, monkeypatch):
        monkeypatch.setenv("MONGO_URI", "mongodb://localhost")
        tester = EnvironmentTester(env_file=tmp_path / "missing.env")
        assert tester.get('MONGO_URI') == "mongodb://localhost"

    def test_read(self):
        tester = EnvironmentTester(environ={'KEY': 'abcdefghijklmnop'})
        value = tester.read('KEY', preview_chars=4)
        assert value.is_set
        assert value.preview == "abcd..."
        assert value.length == 16

        missing = tester.read('NOPE')
        assert not missing.is_set
        assert missing.preview == "NOT SET"

    def test_validate_collects_every_problem(self):
        tester = EnvironmentTester(environ={'KEY': 'xx'})
        result = tester.validate('KEY', prefix="SG.", min_length=21, pattern=r"SG\..+")
        assert not result.valid
        assert len(result.problems) == 3

    def test_validate_unset(self):
        result = EnvironmentTester(environ={}).validate('KEY', prefix="SG.")
        assert not result.is_set
        assert result.problems == ["not set"]

    @pytest.mark.parametrize("value, valid", [
        ("noreply@tasksync.org", True),
        ("a@b.co", True),
        ("no-at-sign.org", False),
        ("two words@example.org", False),
        ("user@localhost", False),
    ])
    def test_email_pattern(self, value, valid):
        tester = EnvironmentTester(environ={'EMAIL': value})
        assert tester.validate('EMAIL', pattern=EMAIL_PATTERN).valid is valid


class TestPackageTester:
    def test_path_exists(self, package_dir):
        tester = PackageTester(package_dir)
        dist = tester.path_exists("dist/")
        assert dist.exists and dist.is_dir
        assert dist.entries == ["index.js"]

        missing = tester.path_exists("src/configs/passport.ts")
        assert not missing.exists
        assert missing.entries == []

    def test_read_manifest(self, package_dir):
        manifest = PackageTester(package_dir).read_manifest()
        assert manifest.found
        assert manifest.dependencies["express"] == "^4.18.2"
        assert manifest.dev_dependencies == {"typescript": "^5.0.0"}
        assert manifest.error is None

    def test_invalid_manifest(self, tmp_path):
        (tmp_path / "package.json").write_text("{not json")
        manifest = PackageTester(tmp_path).read_manifest()
        assert manifest.found
        assert "Error reading package.json" in manifest.error

    def test_manifest_not_an_object(self, tmp_path):
        (tmp_path / "package.json").write_text("[]")
        manifest = PackageTester(tmp_path).read_manifest()
        assert "not a JSON object" in manifest.error
