# formats/__init__.py
from core.errors import ConfigurationError
from .base import METADATA_KEY, FormatCodec
from .json_codec import JsonCodec
from .yaml_codec import YamlCodec, dump_yaml

_CODECS = {
    "json": JsonCodec,
    "yaml": YamlCodec,
    "yml": YamlCodec,
}


def get_codec(format_name: str) -> FormatCodec:
    try:
        return _CODECS[format_name.lower()]()
    except (KeyError, AttributeError):
        raise ConfigurationError(
            f"unsupported format {format_name!r}; expected one of: json, yaml"
        ) from None


__all__ = ["METADATA_KEY", "FormatCodec", "JsonCodec", "YamlCodec", "dump_yaml", "get_codec"]
