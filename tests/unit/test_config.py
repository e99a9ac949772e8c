"""Test central configuration system."""

import pytest
import tempfile
from pathlib import Path
from a429codec.config import Config, CodecConfig, OutputConfig, get_config, format_word


@pytest.mark.unit
class TestConfigMerging:
    """Test configuration merging precedence."""

    def test_default_config(self):
        """Test default configuration values."""
        config = Config()

        assert config.codec.overflow == 'wrap'
        assert config.codec.default_ssm == 3
        assert config.codec.no_sdi is False
        assert config.output.format == 'hex'
        assert config.output.show_fields is False
        assert config.verbose is False
        assert config.validate() == []

    def test_from_dict(self):
        """Test creating config from dictionary."""
        data = {
            'codec': {'overflow': 'clamp', 'default_ssm': 1},
            'output': {'format': 'bin'},
            'verbose': True,
            'unrelated': {'ignored': 1},
        }

        config = Config.from_dict(data)

        assert config.codec.overflow == 'clamp'
        assert config.codec.default_ssm == 1
        assert config.output.format == 'bin'
        assert config.verbose is True

    def test_from_dict_ignores_unknown_fields(self):
        """Test unknown keys inside sections are skipped."""
        config = Config.from_dict({'codec': {'bogus': 5}})
        assert not hasattr(config.codec, 'bogus')

    def test_from_yaml(self):
        """Test loading config from YAML file."""
        yaml_content = """
name: ADC
config:
  codec:
    overflow: error
    no_sdi: true
  output:
    format: dec
labels: []
"""
        with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
            f.write(yaml_content)
            temp_path = Path(f.name)

        try:
            config = Config.from_yaml(temp_path)
            assert config.codec.overflow == 'error'
            assert config.codec.no_sdi is True
            assert config.output.format == 'dec'
        finally:
            temp_path.unlink()

    def test_from_env(self, monkeypatch):
        """Test environment overrides."""
        monkeypatch.setenv('A429_OVERFLOW', 'clamp')
        monkeypatch.setenv('A429_FORMAT', 'bin')
        monkeypatch.setenv('A429_NO_SDI', '1')

        config = Config.from_env()

        assert config.codec.overflow == 'clamp'
        assert config.output.format == 'bin'
        assert config.codec.no_sdi is True
        assert config.verbose is False

    def test_merge_cli_args(self):
        """Test CLI args override, None leaves settings alone."""
        config = Config()
        config.merge_cli_args(overflow=None, format='dec', ssm=0, verbose=True)

        assert config.codec.overflow == 'wrap'
        assert config.output.format == 'dec'
        assert config.codec.default_ssm == 0
        assert config.verbose is True

    def test_precedence(self, monkeypatch):
        """Test CLI > YAML > env > defaults."""
        monkeypatch.setenv('A429_OVERFLOW', 'clamp')
        monkeypatch.setenv('A429_FORMAT', 'bin')

        yaml_content = """
config:
  output:
    format: dec
"""
        with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
            f.write(yaml_content)
            temp_path = Path(f.name)

        try:
            config = get_config(config_path=temp_path)
            assert config.codec.overflow == 'clamp'  # env
            assert config.output.format == 'dec'  # YAML beats env

            config = get_config(cli_args={'format': 'hex'}, config_path=temp_path)
            assert config.output.format == 'hex'  # CLI beats YAML
        finally:
            temp_path.unlink()

    def test_env_disabled(self, monkeypatch):
        """Test use_env=False skips the environment."""
        monkeypatch.setenv('A429_OVERFLOW', 'clamp')
        assert get_config(use_env=False).codec.overflow == 'wrap'

    def test_invalid_config_rejected(self):
        """Test validation errors are raised by get_config."""
        with pytest.raises(ValueError, match="Invalid configuration"):
            get_config(cli_args={'format': 'octal'}, use_env=False)

        config = Config(codec=CodecConfig(overflow='saturate', default_ssm=9),
                        output=OutputConfig(format='xml'))
        assert len(config.validate()) == 3

    def test_to_dict_and_summary(self):
        """Test serialization helpers."""
        config = Config()
        data = config.to_dict()

        assert data['codec']['overflow'] == 'wrap'
        assert data['output']['format'] == 'hex'
        assert config.summary() == "Config[overflow=wrap, ssm=3, no_sdi=False, format=hex]"


@pytest.mark.unit
class TestFormatWord:
    """Test word rendering."""

    def test_hex(self):
        assert format_word(0x28000080) == '0x28000080'
        assert format_word(0x80, 'hex') == '0x00000080'

    def test_dec(self):
        assert format_word(0x28000080, 'dec') == '671088768'

    def test_bin(self):
        """Test binary output is grouped by field."""
        text = format_word(0x28000080, 'bin')
        groups = text.split(' ')

        assert [len(g) for g in groups] == [3, 19, 2, 8]
        assert groups[0] == '001'
        assert groups[3] == '10000000'

    def test_invalid(self):
        with pytest.raises(ValueError):
            format_word(1, 'oct')
