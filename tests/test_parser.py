# tests/test_parser.py

from plugins.scoreboard.logic.parser import build_fragment_pattern, parse_wager_text

SPECIALS = ["挖", "爬"]


def test_label_persists_across_unlabelled_lines_and_index_resets():
    text = "Alice:12/100 3/50\n4/20\n\n   \nBob：114/50挖"
    groups = parse_wager_text(text, SPECIALS)

    assert [(g.label, g.data, g.index) for g in groups] == [
        ("Alice", "12/100", 1),
        ("Alice", "3/50", 2),
        ("Alice", "4/20", 3),
        ("Bob", "114/50挖", 1),
    ]


def test_no_label_defaults_to_empty_string():
    groups = parse_wager_text("1/20 2/30", SPECIALS)
    assert [g.label for g in groups] == ["", ""]
    assert [g.index for g in groups] == [1, 2]


def test_label_only_line_sets_label_for_following_lines():
    groups = parse_wager_text("Carol:\n13--200\n2+-/40爬", SPECIALS)
    assert [(g.label, g.data) for g in groups] == [("Carol", "13--200"), ("Carol", "2+-/40爬")]


def test_empty_label_keeps_current_label_and_counter():
    groups = parse_wager_text("Dan:1/10\n: 2/20", SPECIALS)
    assert [(g.label, g.index) for g in groups] == [("Dan", 1), ("Dan", 2)]


def test_whitespace_between_parts_is_dropped_from_data():
    groups = parse_wager_text("Eve: 12 / 100", SPECIALS)
    assert groups[0].data == "12/100"


def test_first_colon_wins_either_glyph():
    groups = parse_wager_text("Frank：note: 1/10", SPECIALS)
    # label is everything before the first colon; the rest is scanned for fragments
    assert groups[0].label == "Frank"
    assert groups[0].data == "1/10"


def test_multi_character_special_markers_are_escaped():
    pattern = build_fragment_pattern(["wa", "+"])
    match = pattern.search("12/100+")
    assert match.group(4) == "+"

    groups = parse_wager_text("Gus:112/30wa", ["wa"])
    assert groups[0].data == "112/30wa"


def test_empty_special_set_matches_nothing_extra():
    groups = parse_wager_text("Hal:112/30挖", [])
    assert groups[0].data == "112/30"


def test_lines_without_fragments_produce_nothing():
    assert parse_wager_text("hello world\n123", SPECIALS) == []
    assert parse_wager_text("", SPECIALS) == []
