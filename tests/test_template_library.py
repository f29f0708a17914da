import json
import pytest
from tune_finder.tools.template_library import (
    TemplateError,
    TemplateLibrary,
    load_library,
    validate_template,
)


def make_library():
    return TemplateLibrary.from_mapping({
        "first": [1.0, 2.0, 3.0, 4.0, 5.0],
        "second": [10.0, 20.0],
    })


def test_chunks_cover_every_template_in_order():
    library = make_library()
    chunks = list(library.chunks(2))

    assert chunks == [
        ("first", [1.0, 2.0]),
        ("first", [3.0, 4.0]),
        ("first", [5.0]),
        ("second", [10.0, 20.0]),
    ]

def test_chunks_restart_on_each_call():
    library = make_library()
    assert list(library.chunks(3)) == list(library.chunks(3))

def test_chunks_are_lazy():
    library = make_library()
    walk = library.chunks(1)
    assert next(walk) == ("first", [1.0])
    assert next(walk) == ("first", [2.0])

def test_chunk_longer_than_template():
    library = make_library()
    assert list(library.chunk_template("second", 50)) == [[10.0, 20.0]]

def test_zero_chunk_size_rejected():
    with pytest.raises(ValueError):
        make_library().chunks(0)

def test_names_keep_insertion_order():
    assert make_library().names == ["first", "second"]

def test_templates_are_not_mutated_by_chunking():
    library = make_library()
    for _, chunk in library.chunks(2):
        chunk.append(999.0)
    assert library.get("first").frequencies == [1.0, 2.0, 3.0, 4.0, 5.0]


def test_empty_template_rejected():
    with pytest.raises(TemplateError, match="empty"):
        TemplateLibrary.from_mapping({"silent": []})

def test_empty_library_rejected():
    with pytest.raises(TemplateError):
        TemplateLibrary.from_mapping({})

def test_negative_frequency_rejected():
    with pytest.raises(TemplateError, match="index 1"):
        validate_template("bad", [100.0, -3.0])

def test_non_numeric_rejected():
    with pytest.raises(TemplateError):
        validate_template("bad", [100.0, "loud"])

def test_nan_rejected():
    with pytest.raises(TemplateError):
        validate_template("bad", [float("nan")])

def test_blank_name_rejected():
    with pytest.raises(TemplateError):
        validate_template("  ", [1.0])

def test_template_error_is_value_error():
    assert issubclass(TemplateError, ValueError)


def test_from_json_flat_mapping(tmp_path):
    path = tmp_path / "melodies.json"
    path.write_text(json.dumps({"Theme": [523.25, 0, 659.25]}))

    library = TemplateLibrary.from_json(path)
    assert library.names == ["Theme"]
    assert library.get("Theme").frequencies == [523.25, 0.0, 659.25]
    assert library.get("Theme").source == str(path)

def test_from_json_template_list(tmp_path):
    path = tmp_path / "melodies.json"
    path.write_text(json.dumps({"templates": [
        {"name": "A", "frequencies": [1, 2]},
        {"name": "B", "frequencies": [3]},
    ]}))

    library = TemplateLibrary.from_json(path)
    assert library.names == ["A", "B"]

def test_from_json_missing_keys(tmp_path):
    path = tmp_path / "melodies.json"
    path.write_text(json.dumps({"templates": [{"name": "A"}]}))
    with pytest.raises(TemplateError, match="frequencies"):
        TemplateLibrary.from_json(path)

def test_from_json_invalid_json(tmp_path):
    path = tmp_path / "melodies.json"
    path.write_text("{not json")
    with pytest.raises(TemplateError):
        TemplateLibrary.from_json(path)

def test_from_path_directory_rejects_duplicates(tmp_path):
    (tmp_path / "a.json").write_text(json.dumps({"Same": [1.0]}))
    (tmp_path / "b.json").write_text(json.dumps({"Same": [2.0]}))
    with pytest.raises(TemplateError, match="Duplicate"):
        TemplateLibrary.from_path(tmp_path)

def test_from_path_empty_directory(tmp_path):
    with pytest.raises(TemplateError):
        TemplateLibrary.from_path(tmp_path)

def test_from_path_missing():
    with pytest.raises(FileNotFoundError):
        TemplateLibrary.from_path("/does/not/exist.json")


def test_bundled_library_loads():
    library = load_library()
    assert len(library) >= 2
    assert "Twinkle Twinkle Little Star" in library

def test_describe():
    info = make_library().describe(interval_ms=100)
    assert info[0].name == "first"
    assert info[0].length == 5
    assert info[0].duration_seconds == pytest.approx(0.5)
