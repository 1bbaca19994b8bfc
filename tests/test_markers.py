from carpatch_core.markers import Marker, scan_markers


def test_scan_counts_line_exact_markers():
    text = "a = 1\nCar();\nb = 2\n    Car();\n"
    result = scan_markers(text)

    assert result.count == 2
    assert result.locations == [2, 4]
    assert result.markers[1] == Marker(line=4, indent="    ")


def test_locations_strictly_increase():
    text = "\n".join(["Car();" if i % 3 == 0 else f"x{i} = {i}" for i in range(30)])
    result = scan_markers(text)

    assert result.count == 10
    assert all(a < b for a, b in zip(result.locations, result.locations[1:]))


def test_embedded_token_is_not_a_marker():
    text = "\n".join([
        "x = 1; Car();",
        "Car(); # trailing comment",
        "Car()",
        "car();",
        "print('Car();')",
    ])
    assert scan_markers(text).count == 0


def test_surrounding_whitespace_is_trimmed():
    result = scan_markers("\tCar();   \n  Car();\t")

    assert result.count == 2
    assert [m.indent for m in result.markers] == ["\t", "  "]


def test_line_endings_are_normalized():
    crlf = scan_markers("a\r\nCar();\r\nb\r\nCar();")
    cr = scan_markers("a\rCar();\rb\rCar();")

    assert crlf.locations == [2, 4]
    assert cr.locations == [2, 4]


def test_scan_is_idempotent():
    text = "Car();\nx\nCar();"
    first = scan_markers(text)

    for _ in range(5):
        assert scan_markers(text) == first


def test_empty_document():
    result = scan_markers("")

    assert result.count == 0
    assert result.to_dict() == {"count": 0, "locations": []}
