import random
from pathlib import Path

import pytest
from pydantic import ValidationError

from carpatch_core.documents import FileDocumentStore, InMemoryDocumentStore
from carpatch_core.errors import CapabilityError, DocumentNotFoundError, FailureKind, LoadError
from carpatch_core.pipeline import PatchPipeline
from carpatch_core.schemas import PatchSpecification


def _pipeline(documents: dict[str, str], **kwargs) -> PatchPipeline:
    return PatchPipeline(InMemoryDocumentStore(documents), rng=random.Random(0), **kwargs)


class TestLoadAndPatch:
    def test_single_patch_leaves_second_marker(self) -> None:
        pipeline = _pipeline({"doc": "a\nCar();\nb\nCar();\nc"})
        outcome = pipeline.load_and_patch("doc", PatchSpecification(patches=["X();"]))

        assert outcome.patched_text == "a\nX();\nb\nCar();\nc"
        assert outcome.patches_applied == 1
        assert outcome.errors == []
        assert outcome.ok

    def test_no_markers_is_reported_and_text_untouched(self) -> None:
        text = "a = 1\r\nb = 2\n"
        pipeline = _pipeline({"doc": text})
        outcome = pipeline.load_and_patch(
            "doc", PatchSpecification(patches=["x"], add_fake_patches=True, randomize_order=True)
        )

        assert outcome.patches_applied == 0
        assert outcome.patched_text == text
        assert outcome.original_text == text
        assert outcome.error_messages == ["No Car(); markers found in file"]
        assert outcome.has_error(FailureKind.NO_MARKERS)

    def test_missing_document_is_recorded(self) -> None:
        outcome = _pipeline({}).load_and_patch("missing.py", PatchSpecification(patches=["x"]))

        assert outcome.patches_applied == 0
        assert outcome.patched_text == ""
        assert outcome.errors[0].kind == FailureKind.LOAD
        assert outcome.errors[0].message.startswith("Failed to load file:")

    def test_preserve_original_false_drops_original(self) -> None:
        pipeline = _pipeline({"doc": "Car();"})
        outcome = pipeline.load_and_patch(
            "doc", PatchSpecification(patches=["x = 1"], preserve_original=False)
        )

        assert outcome.original_text is None
        assert outcome.patched_text == "x = 1"

    def test_decoys_fill_every_marker(self) -> None:
        pipeline = _pipeline({"doc": "Car();\nCar();\nCar();"})
        outcome = pipeline.load_and_patch(
            "doc", PatchSpecification(patches=["real = 1"], add_fake_patches=True)
        )

        assert outcome.patches_applied == 3
        assert "Car();" not in outcome.patched_text
        assert outcome.patched_text.startswith("real = 1\n")

    def test_accepts_plain_mapping_spec(self) -> None:
        outcome = _pipeline({"doc": "Car();"}).load_and_patch("doc", {"patches": ["y = 2"]})

        assert outcome.patched_text == "y = 2"

    def test_coerce_keeps_specification_instances(self) -> None:
        spec = PatchSpecification(patches=["a = 1"])

        assert PatchSpecification.coerce(spec) is spec
        assert PatchSpecification.coerce({"patches": ["a = 1"]}) == spec


class TestRunWithPatches:
    def test_patched_program_result(self) -> None:
        pipeline = _pipeline({"doc": "total = 1\nCar();\ntotal"})
        outcome = pipeline.run_with_patches("doc", PatchSpecification(patches=["total += 41"]))

        assert outcome.ok
        assert outcome.execution_result == 42

    def test_capabilities_reach_program(self) -> None:
        pipeline = _pipeline({"doc": "Car();\nresult"})
        outcome = pipeline.run_with_patches(
            "doc", PatchSpecification(patches=["result = base * 2"]), {"base": 21}
        )

        assert outcome.execution_result == 42

    def test_execution_fault_is_recorded(self) -> None:
        pipeline = _pipeline({"doc": "Car();"})
        outcome = pipeline.run_with_patches(
            "doc", PatchSpecification(patches=['raise RuntimeError("bad patch")'])
        )

        assert outcome.patches_applied == 1
        assert outcome.execution_result is None
        assert outcome.errors[0].kind == FailureKind.EXECUTION
        assert outcome.errors[0].message == "Execution error: RuntimeError: bad patch"

    def test_timeout_is_recorded(self) -> None:
        pipeline = _pipeline({"doc": "Car();"}, timeout_ms=50)
        outcome = pipeline.run_with_patches(
            "doc", PatchSpecification(patches=["while True:\n    pass"])
        )

        assert outcome.execution_result is None
        assert outcome.errors[0].kind == FailureKind.TIMEOUT
        assert "timed out" in outcome.errors[0].message

    def test_no_markers_skips_execution(self) -> None:
        pipeline = _pipeline({"doc": "raise RuntimeError('should not run')"})
        outcome = pipeline.run_with_patches("doc", PatchSpecification(patches=["x"]))

        assert [e.kind for e in outcome.errors] == [FailureKind.NO_MARKERS]

    def test_output_is_attached(self) -> None:
        pipeline = _pipeline({"doc": "def main():\n    Car();\n\nmain()"})
        outcome = pipeline.run_with_patches(
            "doc", PatchSpecification(patches=['print("patched")\nreturn 5'])
        )

        assert outcome.output == "patched\n"
        assert outcome.execution_result == 5

    def test_repr_result_is_flagged(self) -> None:
        pipeline = _pipeline({"doc": "Car();\nvalue"})
        outcome = pipeline.run_with_patches("doc", PatchSpecification(patches=["value = {1, 2}"]))

        assert outcome.ok
        assert outcome.result_is_repr is True
        assert outcome.execution_result == "{1, 2}"

    def test_json_result_is_not_flagged(self) -> None:
        pipeline = _pipeline({"doc": "Car();\nvalue"})
        outcome = pipeline.run_with_patches("doc", PatchSpecification(patches=["value = [1, 2]"]))

        assert outcome.result_is_repr is False
        assert outcome.execution_result == [1, 2]

    def test_decoys_and_shuffle_still_run(self) -> None:
        text = "count = 0\nCar();\nCar();\nCar();\ncount"
        pipeline = _pipeline({"doc": text})
        outcome = pipeline.run_with_patches(
            "doc",
            PatchSpecification(patches=["count += 1"], add_fake_patches=True, randomize_order=True),
        )

        assert outcome.ok, outcome.error_messages
        assert outcome.patches_applied == 3
        assert outcome.execution_result in (0, 1)

    def test_bad_capabilities_raise(self) -> None:
        pipeline = _pipeline({"doc": "Car();"})
        with pytest.raises(CapabilityError):
            pipeline.run_with_patches("doc", PatchSpecification(patches=["x = 1"]), {"f": lambda: 1})


def test_blank_patch_is_a_malformed_specification() -> None:
    with pytest.raises(ValidationError):
        PatchSpecification(patches=["ok", "   "])


def test_scan_through_store(tmp_path: Path) -> None:
    (tmp_path / "mod.py").write_text("x = 1\n    Car();\nCar();\n", encoding="utf-8")
    pipeline = PatchPipeline(FileDocumentStore(tmp_path))

    result = pipeline.scan("mod.py")

    assert result.count == 2
    assert result.locations == [2, 3]


def test_scan_missing_file_raises(tmp_path: Path) -> None:
    pipeline = PatchPipeline(FileDocumentStore(tmp_path))
    with pytest.raises(DocumentNotFoundError):
        pipeline.scan("nope.py")


def test_unreadable_file_is_load_error(tmp_path: Path) -> None:
    (tmp_path / "bin.py").write_bytes(b"\xff\xfe\xfa Car();")
    pipeline = PatchPipeline(FileDocumentStore(tmp_path))

    with pytest.raises(LoadError):
        pipeline.scan("bin.py")
