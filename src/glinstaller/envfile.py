"""Line-preserving models for the Greenlight `.env` and compose files.

Both files ship from the Greenlight image with blank or commented-out keys.
The models below only ever rewrite the lines that belong to the key being
set, so operator comments, ordering and unrelated values survive every run.

A key is *blank* when no uncommented assignment gives it a value. Only lines
holding an empty assignment, commented out or not, are filled. Values are read
with python-dotenv, so quotes, `export` prefixes and inline comments are honoured.
"""

import io
import re
from pathlib import Path
from typing import Dict, Iterator, List, Optional

import yaml
from dotenv import dotenv_values

from glinstaller.errors import InstallerError


def _split_line(line: str):
    body = line.rstrip("\r\n")
    return body, line[len(body):]


class _LineDocument:
    def __init__(self, text: str = ""):
        self.lines: List[str] = text.splitlines(keepends=True)

    @staticmethod
    def _read(path: Path) -> str:
        with open(path, "r", encoding="utf-8", newline="") as file_obj:
            return file_obj.read()

    @classmethod
    def load(cls, path: Path):
        try:
            return cls(cls._read(path))
        except OSError as exc:
            raise InstallerError(f"Could not read {path}: {exc}") from exc

    def render(self) -> str:
        return "".join(self.lines)

    def save(self, path: Path) -> bool:
        """Write the document to *path*; return False when nothing changed."""
        path = Path(path)
        content = self.render()
        if path.exists() and self._read(path) == content:
            return False
        with open(path, "w", encoding="utf-8", newline="") as file_obj:
            file_obj.write(content)
        return True

    def _iter_bodies(self) -> Iterator:
        for index, line in enumerate(self.lines):
            body, ending = _split_line(line)
            yield index, body, ending

    def _append(self, body: str):
        if self.lines and not self.lines[-1].endswith(("\n", "\r")):
            self.lines[-1] += "\n"
        self.lines.append(body + "\n")


class EnvFile(_LineDocument):
    """A dotenv document with explicit fill-if-blank / overwrite policies."""

    @staticmethod
    def _blank_pattern(key: str):
        return re.compile(
            rf"^[# \t]*(?:export[ \t]+)?{re.escape(key)}=[ \t]*(?:\"\"|'')?(?:[ \t]+#.*|[ \t]*)$"
        )

    @staticmethod
    def _any_pattern(key: str):
        return re.compile(rf"^[# \t]*(?:export[ \t]+)?{re.escape(key)}=.*$")

    def values(self) -> Dict[str, Optional[str]]:
        return dotenv_values(stream=io.StringIO(self.render()), interpolate=False)

    def get(self, key: str) -> Optional[str]:
        """Return the value of the last uncommented assignment of *key*."""
        value = self.values().get(key)
        return value.strip() if value is not None else None

    def has_key(self, key: str) -> bool:
        pattern = self._any_pattern(key)
        return any(pattern.match(body) for _, body, _ in self._iter_bodies())

    def is_blank(self, key: str) -> bool:
        """True when no uncommented assignment gives *key* a value."""
        return not self.get(key)

    def set(self, key: str, value: str, overwrite: bool = False) -> bool:
        """Assign *key*.

        With ``overwrite=False`` only blank lines are rewritten, and a key that
        appears nowhere in the file is appended. With ``overwrite=True`` every
        line for the key, commented or not, is rewritten. Returns True when the
        document changed.
        """
        if not overwrite and not self.is_blank(key):
            return False

        pattern = self._any_pattern(key) if overwrite else self._blank_pattern(key)
        replacement = f"{key}={value}"
        changed = False
        matched = False

        for index, body, ending in self._iter_bodies():
            if not pattern.match(body):
                continue
            matched = True
            if body != replacement:
                self.lines[index] = replacement + ending
                changed = True

        if not matched and not self.has_key(key):
            self._append(replacement)
            changed = True

        return changed


class ComposeFile(_LineDocument):
    """The Greenlight docker-compose descriptor."""

    @staticmethod
    def _environment_pattern(name: str):
        return re.compile(rf"^([ \t-]*{re.escape(name)})=(.*)$")

    def get_environment(self, name: str) -> Optional[str]:
        pattern = self._environment_pattern(name)
        for _, body, _ in self._iter_bodies():
            match = pattern.match(body)
            if match:
                return match.group(2).strip()
        return None

    def set_environment_if_blank(self, name: str, value: str) -> bool:
        """Fill every blank list-style ``- NAME=`` entry, keeping its indentation."""
        pattern = self._environment_pattern(name)
        changed = False
        for index, body, ending in self._iter_bodies():
            match = pattern.match(body)
            if not match or match.group(2).strip():
                continue
            self.lines[index] = f"{match.group(1)}={value}{ending}"
            changed = True
        return changed

    def service_names(self) -> List[str]:
        try:
            parsed = yaml.safe_load(self.render())
        except yaml.YAMLError as exc:
            raise InstallerError(f"Invalid compose descriptor: {exc}") from exc

        if not isinstance(parsed, dict) or not isinstance(parsed.get("services"), dict):
            raise InstallerError("Compose descriptor must define a `services` mapping.")
        return list(parsed["services"].keys())
