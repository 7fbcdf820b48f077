import json
import mimetypes
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union

FileInput = Union[bytes, str, os.PathLike, tuple, Any]
FilePart = tuple[str, bytes, str]


@dataclass
class FormPayload:
    fields: dict[str, Any] = field(default_factory=dict)
    files: list[tuple[str, FilePart]] = field(default_factory=list)

    def add_field(self, name: str, value: str) -> None:
        existing = self.fields.get(name)
        if existing is None:
            self.fields[name] = value
        elif isinstance(existing, list):
            existing.append(value)
        else:
            self.fields[name] = [existing, value]

    def add_file(self, name: str, value: FileInput) -> None:
        self.files.append((name, file_part(value)))


def _is_file(value: Any) -> bool:
    return isinstance(value, (bytes, bytearray, os.PathLike, tuple)) or hasattr(value, "read")


def file_part(value: FileInput) -> FilePart:
    """Normalize a file input into ``(filename, content, content_type)``.

    Accepts raw bytes, a filesystem path, a binary file object, or a
    ``(filename, content[, content_type])`` tuple.
    """
    if isinstance(value, tuple):
        filename, content = value[0], value[1]
        content_type = value[2] if len(value) > 2 else _guess(filename)  # noqa: PLR2004
        if hasattr(content, "read"):
            content = content.read()
        return filename, bytes(content), content_type
    if isinstance(value, (bytes, bytearray)):
        return "blob", bytes(value), "application/octet-stream"
    if isinstance(value, (str, os.PathLike)):
        path = Path(value)
        return path.name, path.read_bytes(), _guess(path.name)
    if hasattr(value, "read"):
        filename = os.path.basename(getattr(value, "name", "") or "blob")
        content = value.read()
        if isinstance(content, str):
            content = content.encode("utf-8")
        return filename, content, _guess(filename)
    raise TypeError(f"unsupported file input: {type(value).__name__}")


def _guess(filename: str) -> str:
    return mimetypes.guess_type(filename)[0] or "application/octet-stream"


def to_form_data(obj: dict[str, Any]) -> FormPayload:
    """Flatten a dict into multipart fields.

    Lists become repeated ``key[]`` entries, files become file parts, nested
    dicts are JSON encoded and everything else is stringified.
    """
    form = FormPayload()
    for key, value in obj.items():
        if isinstance(value, list):
            for item in value:
                if _is_file(item):
                    form.add_file(f"{key}[]", item)
                else:
                    form.add_field(f"{key}[]", _scalar(item))
        elif _is_file(value):
            form.add_file(key, value)
        elif isinstance(value, dict):
            form.add_field(key, json.dumps(value))
        else:
            form.add_field(key, _scalar(value))
    return form


def _scalar(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


def upload_form(files: Union[FileInput, list[FileInput]], field_name: str) -> FormPayload:
    """``field_name`` for a single file, ``field_name[i]`` per item for a list."""
    form = FormPayload()
    if isinstance(files, list):
        for index, f in enumerate(files):
            form.add_file(f"{field_name}[{index}]", f)
    else:
        form.add_file(field_name, files)
    return form
