"""Tests for document loading and endpoint settings."""
import pytest

from fabric_provisioner.config import (
    ConfigDocument,
    EndpointSettings,
    find_document,
    load_document,
    load_endpoint,
)
from fabric_provisioner.errors import DocumentError, EndpointError


class TestFindDocument:
    """Tests for locating the document."""

    def test_finds_fabric_yaml_in_directory(self, tmp_path):
        """fabric.yaml is found inside the given directory."""
        (tmp_path / "fabric.yaml").write_text("VLANs: []\n")
        assert find_document(tmp_path) == tmp_path / "fabric.yaml"

    def test_prefers_fabric_yaml_over_config_yaml(self, tmp_path):
        """Names are searched in order."""
        (tmp_path / "config.yaml").write_text("{}\n")
        (tmp_path / "fabric.yml").write_text("{}\n")
        assert find_document(tmp_path) == tmp_path / "fabric.yml"

    def test_accepts_file_path(self, tmp_path):
        """A file path is used as is."""
        doc = tmp_path / "site.yaml"
        doc.write_text("{}\n")
        assert find_document(doc) == doc

    def test_empty_directory(self, tmp_path):
        """A directory without a document is a load error."""
        with pytest.raises(DocumentError, match="No configuration document"):
            find_document(tmp_path)

    def test_missing_path(self, tmp_path):
        """A path that does not exist is a load error."""
        with pytest.raises(DocumentError, match="does not exist"):
            find_document(tmp_path / "nowhere")


class TestConfigDocument:
    """Tests for parsing and normalization."""

    def test_every_leaf_is_a_string(self):
        """Numbers and booleans stay text until validation."""
        doc = ConfigDocument.from_text("VLANs:\n  - Name: mgmt\n    Id: 10\n    Default: yes\n")
        row = doc.section("VLANs")[0]
        assert row == {"Name": "mgmt", "Id": "10", "Default": "yes"}

    def test_leaves_are_stripped(self):
        """Surrounding whitespace is removed from quoted values."""
        doc = ConfigDocument.from_text("VLANs:\n  - Name: '  mgmt  '\n")
        assert doc.section("VLANs")[0]["Name"] == "mgmt"

    def test_missing_section_is_none(self):
        """An absent section reads as None."""
        doc = ConfigDocument.from_text("VLANs: []\n")
        assert doc.section("Pools") is None
        assert doc.names() == ["VLANs"]

    def test_empty_text(self):
        """An empty document has no sections."""
        assert ConfigDocument.from_text("").names() == []

    def test_root_must_be_mapping(self):
        """A list at the root is a load error."""
        with pytest.raises(DocumentError, match="mapping"):
            ConfigDocument.from_text("- a\n- b\n")

    def test_invalid_yaml(self):
        """Unparsable YAML is a load error."""
        with pytest.raises(DocumentError, match="Invalid YAML"):
            ConfigDocument.from_text("VLANs: [unclosed\n")

    def test_sections_are_read_only(self):
        """The section map cannot be modified after load."""
        doc = ConfigDocument.from_text("VLANs: []\n")
        with pytest.raises(TypeError):
            doc.sections["Pools"] = []

    def test_load_document(self, tmp_path):
        """load_document reads the located file."""
        (tmp_path / "fabric.yaml").write_text("Organizations:\n  - Name: Lab\n")
        doc = load_document(tmp_path)
        assert doc.path == tmp_path / "fabric.yaml"
        assert doc.section("Organizations") == [{"Name": "Lab"}]

    def test_not_utf8(self, tmp_path):
        """A document that is not UTF-8 text is a load error."""
        (tmp_path / "fabric.yaml").write_bytes(b"\xff\xfeVLANs: []\n")
        with pytest.raises(DocumentError, match="Cannot read"):
            load_document(tmp_path)


class TestEndpointSettings:
    """Tests for endpoint settings."""

    def test_from_document(self):
        """Settings come from the Endpoint record."""
        doc = ConfigDocument.from_text(
            "Endpoint:\n"
            "  Url: https://fabric.example.net/\n"
            "  Username: ops\n"
            "  Timeout: 5\n"
            "  VerifySsl: no\n"
        )
        settings = load_endpoint(doc, environ={})
        assert settings.client == "http"
        assert settings.base_url == "https://fabric.example.net"
        assert settings.username == "ops"
        assert settings.timeout == 5.0
        assert settings.verify_ssl is False
        assert settings.label == "https://fabric.example.net"

    def test_environment_overrides_document(self):
        """FABRIC_* variables take precedence."""
        doc = ConfigDocument.from_text("Endpoint:\n  Url: https://a.example.net\n")
        settings = load_endpoint(
            doc, environ={"FABRIC_URL": "https://b.example.net", "FABRIC_USERNAME": "env-user"}
        )
        assert settings.base_url == "https://b.example.net"
        assert settings.username == "env-user"

    def test_memory_client_needs_no_url(self):
        """The in-memory client runs without an endpoint URL."""
        doc = ConfigDocument.from_text("Endpoint:\n  Client: memory\n")
        settings = load_endpoint(doc, environ={})
        assert settings.client == "memory"
        assert settings.label == "memory"

    def test_http_client_requires_url(self):
        """An http client without a URL is an endpoint error."""
        with pytest.raises(EndpointError, match="Url is required"):
            load_endpoint(ConfigDocument.from_text("{}"), environ={})

    def test_unknown_setting_rejected(self):
        """Typos in the Endpoint record are rejected."""
        doc = ConfigDocument.from_text("Endpoint:\n  Client: memory\n  Passwrd: x\n")
        with pytest.raises(EndpointError):
            load_endpoint(doc, environ={})

    def test_timeout_must_be_positive(self):
        """A zero timeout is rejected."""
        doc = ConfigDocument.from_text("Endpoint:\n  Client: memory\n  Timeout: 0\n")
        with pytest.raises(EndpointError):
            load_endpoint(doc, environ={})

    def test_endpoint_must_be_record(self):
        """A list under Endpoint is rejected."""
        doc = ConfigDocument.from_text("Endpoint:\n  - Client: memory\n")
        with pytest.raises(EndpointError, match="single record"):
            load_endpoint(doc, environ={})

    def test_password_from_configured_variable(self, monkeypatch):
        """The password is read from the variable named by PasswordEnv."""
        monkeypatch.setenv("LAB_SECRET", "s3cret")
        settings = EndpointSettings(client="memory", password_env="LAB_SECRET")
        assert settings.get_password() == "s3cret"
