"""Local persistence adapters."""

from .files import dump_json, read_json, read_json_default, write_json_path

__all__ = ["dump_json", "read_json", "read_json_default", "write_json_path"]
