import random

from carpatch_core.applicator import apply_plan, indent_fragment
from carpatch_core.markers import scan_markers
from carpatch_core.planner import PatchPlan, build_plan


def test_single_patch_partial_fill():
    result = apply_plan("a\nCar();\nb\nCar();\nc", PatchPlan(fragments=("X();",)))

    assert result.patched_text == "a\nX();\nb\nCar();\nc"
    assert result.applied_count == 1


def test_fragments_assigned_in_line_order():
    text = "Car();\nmid\nCar();\nend\nCar();"
    result = apply_plan(text, PatchPlan(fragments=("one", "two", "three")))

    assert result.patched_text == "one\nmid\ntwo\nend\nthree"
    assert result.applied_count == 3


def test_extra_fragments_are_ignored():
    result = apply_plan("Car();", PatchPlan(fragments=("a", "b", "c")))

    assert result.patched_text == "a"
    assert result.applied_count == 1


def test_multiline_fragment_inherits_indent():
    text = "def f():\n    Car();\n    return x\n"
    fragment = "x = 1\n\nif x:\n    x += 1"
    result = apply_plan(text, PatchPlan(fragments=(fragment,)))

    assert result.patched_text == "def f():\n    x = 1\n\n    if x:\n        x += 1\n    return x\n"


def test_indentation_law_holds_for_every_marker():
    text = "Car();\nif True:\n\tCar();\n    if True:\n        Car();\n"
    fragment = "a = 1\n\nb = 2"
    markers = scan_markers(text).markers
    result = apply_plan(text, PatchPlan(fragments=(fragment,) * 3))

    lines = result.patched_text.split("\n")
    offset = 0
    for marker in markers:
        start = marker.line - 1 + offset
        inserted = lines[start:start + 3]
        for line in inserted:
            if line.strip():
                assert line[: len(line) - len(line.lstrip())] == marker.indent
            else:
                assert line == ""
        offset += 2


def test_partial_fill_leaves_remaining_markers_verbatim():
    text = "x\n  Car();\ny\n  Car();\nz\n  Car();"
    result = apply_plan(text, PatchPlan(fragments=("p",)))

    assert result.applied_count == 1
    assert result.patched_text.count("  Car();") == 2
    assert result.patched_text.startswith("x\n  p\n")


def test_crlf_document_is_patched():
    result = apply_plan("a\r\nCar();\r\nb", PatchPlan(fragments=("X();",)))

    assert result.patched_text == "a\nX();\nb"


def test_same_input_same_output():
    text = "Car();\nCar();\nCar();"
    plan = build_plan(3, ["a"], randomize_order=True, add_fake_patches=True, rng=random.Random(11))

    assert apply_plan(text, plan) == apply_plan(text, plan)


def test_blank_lines_in_fragment_stay_blank():
    assert indent_fragment("a\n   \nb", "  ") == "  a\n   \n  b"
