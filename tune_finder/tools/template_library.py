"""
Reference melody library.

Templates are loaded once at startup and never mutated afterwards. A live
trajectory is usually much shorter than a template, so matching walks every
window-aligned chunk of every template rather than just its prefix.
"""

import json
import math
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

from tune_finder.models.melody import Template, TemplateInfo
from tune_finder.tools.midi_templates import sample_midi_melody

MIDI_SUFFIXES = {".mid", ".midi"}

# Bundled sample data set
DEFAULT_TEMPLATES_PATH = Path(__file__).parent.parent / "data" / "templates.json"


class TemplateError(ValueError):
    """Raised when reference melody data cannot be used for matching."""


def validate_template(name: str, values: Sequence[float], source: Optional[str] = None) -> Template:
    """Check one template and freeze it into a Template model."""
    where = f" in {source}" if source else ""

    if not isinstance(name, str) or not name.strip():
        raise TemplateError(f"Template name must be a non-empty string{where}, got {name!r}")
    if isinstance(values, (str, bytes)) or not isinstance(values, Iterable):
        raise TemplateError(f"Template {name!r}{where} must be a list of frequencies")

    frequencies: List[float] = []
    for index, value in enumerate(values):
        try:
            hz = float(value)
        except (TypeError, ValueError):
            raise TemplateError(
                f"Template {name!r}{where}: value at index {index} is not a number ({value!r})"
            ) from None
        if not math.isfinite(hz) or hz < 0:
            raise TemplateError(
                f"Template {name!r}{where}: value at index {index} must be a finite, "
                f"non-negative frequency, got {value!r}"
            )
        frequencies.append(hz)

    if not frequencies:
        raise TemplateError(f"Template {name!r}{where} is empty")

    return Template(name=name, frequencies=frequencies, source=source)


class TemplateLibrary:
    """Read-only, insertion-ordered collection of reference trajectories."""

    def __init__(self, templates: Iterable[Template]):
        self._templates: Dict[str, Template] = {}
        for template in templates:
            if template.name in self._templates:
                raise TemplateError(f"Duplicate template name: {template.name!r}")
            self._templates[template.name] = template

        if not self._templates:
            raise TemplateError("Template library is empty")

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Sequence[float]], source: Optional[str] = None) -> "TemplateLibrary":
        return cls(validate_template(name, values, source) for name, values in mapping.items())

    @classmethod
    def from_json(cls, path) -> "TemplateLibrary":
        """
        Load templates from a JSON file.

        Two layouts are accepted:
            {"Name": [hz, ...], ...}
            {"templates": [{"name": "Name", "frequencies": [hz, ...]}, ...]}
        """
        path = Path(path)
        try:
            with open(path) as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise TemplateError(f"Invalid JSON in {path}: {e}") from e

        return cls(_parse_json_templates(data, str(path)))

    @classmethod
    def from_path(cls, path, interval_ms: float = 100.0) -> "TemplateLibrary":
        """
        Load from a JSON file, a MIDI file, or a directory holding either.

        MIDI melodies are sampled at ``interval_ms`` and named after the file.
        Directory entries are read in sorted filename order.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(str(path))

        if path.is_dir():
            files = sorted(
                p for p in path.iterdir()
                if p.is_file() and (p.suffix.lower() == ".json" or p.suffix.lower() in MIDI_SUFFIXES)
            )
            if not files:
                raise TemplateError(f"No .json or .mid files found in {path}")
        else:
            files = [path]

        templates: List[Template] = []
        for file_path in files:
            suffix = file_path.suffix.lower()
            if suffix in MIDI_SUFFIXES:
                templates.append(load_midi_template(file_path, interval_ms=interval_ms))
            elif suffix == ".json":
                templates.extend(cls.from_json(file_path))
            else:
                raise TemplateError(f"Unsupported template file: {file_path}")

        return cls(templates)

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def names(self) -> List[str]:
        return list(self._templates)

    def get(self, name: str) -> Template:
        return self._templates[name]

    def __len__(self) -> int:
        return len(self._templates)

    def __iter__(self) -> Iterator[Template]:
        return iter(self._templates.values())

    def __contains__(self, name: object) -> bool:
        return name in self._templates

    def describe(self, interval_ms: float) -> List[TemplateInfo]:
        return [
            TemplateInfo(
                name=t.name,
                length=len(t.frequencies),
                duration_seconds=len(t.frequencies) * interval_ms / 1000.0,
            )
            for t in self._templates.values()
        ]

    # ------------------------------------------------------------------
    # Chunking
    # ------------------------------------------------------------------

    def chunk_template(self, name: str, size: int) -> Iterator[List[float]]:
        """Consecutive chunks of one template; the last one may be shorter."""
        if size < 1:
            raise ValueError(f"Chunk size must be >= 1, got {size}")

        values = self._templates[name].frequencies
        for start in range(0, len(values), size):
            yield values[start:start + size]

    def chunks(self, size: int) -> Iterator[Tuple[str, List[float]]]:
        """
        Lazily yield (template_name, chunk) for every template in insertion
        order. Each call returns a fresh generator, so the walk can be
        restarted for every match pass.
        """
        if size < 1:
            raise ValueError(f"Chunk size must be >= 1, got {size}")
        return self._iter_chunks(size)

    def _iter_chunks(self, size: int) -> Iterator[Tuple[str, List[float]]]:
        for name in self._templates:
            for chunk in self.chunk_template(name, size):
                yield name, chunk


def _parse_json_templates(data, source: str) -> List[Template]:
    if isinstance(data, dict) and "templates" in data:
        entries = data["templates"]
        if not isinstance(entries, list):
            raise TemplateError(f"'templates' in {source} must be a list")
        templates = []
        for index, entry in enumerate(entries):
            if not isinstance(entry, dict) or "name" not in entry or "frequencies" not in entry:
                raise TemplateError(
                    f"Entry {index} in {source} needs 'name' and 'frequencies' keys"
                )
            templates.append(validate_template(entry["name"], entry["frequencies"], source))
        return templates

    if isinstance(data, dict):
        return [validate_template(name, values, source) for name, values in data.items()]

    raise TemplateError(f"Unrecognized template layout in {source}")


def load_midi_template(path, interval_ms: float = 100.0, name: Optional[str] = None) -> Template:
    """Sample a monophonic MIDI melody into a Template."""
    path = Path(path)
    try:
        frequencies = sample_midi_melody(str(path), interval_ms=interval_ms)
    except ValueError as e:
        raise TemplateError(str(e)) from e
    return validate_template(name or path.stem, frequencies, str(path))


def load_library(path=None, interval_ms: float = 100.0) -> TemplateLibrary:
    """Load the configured library, falling back to the bundled data set."""
    target = Path(path) if path else DEFAULT_TEMPLATES_PATH
    library = TemplateLibrary.from_path(target, interval_ms=interval_ms)
    print(f"[templates] Loaded {len(library)} templates from {target}")
    return library
