from casedeck.slides.markup import Span, Tone, coloured, has_markup, parse_spans, strip_markup


def test_parses_each_tone_in_order():
    spans = parse_spans("Under _Article 21_ the *right to life* bars ~torture~.")

    assert spans == (
        Span(Tone.PLAIN, "Under "),
        Span(Tone.BLUE, "Article 21"),
        Span(Tone.PLAIN, " the "),
        Span(Tone.GOLD, "right to life"),
        Span(Tone.PLAIN, " bars "),
        Span(Tone.RED, "torture"),
        Span(Tone.PLAIN, "."),
    )


def test_identifiers_and_arithmetic_are_not_spans():
    text = "see case_file_no and 2*3*4"
    assert parse_spans(text) == (Span(Tone.PLAIN, text),)
    assert not has_markup(text)


def test_strip_markup_keeps_the_words():
    assert strip_markup("*mens rea* under _Section 302 IPC_") == "mens rea under Section 302 IPC"


def test_empty_text_has_no_spans():
    assert parse_spans("") == ()


def test_coloured_filters_by_tone():
    spans = parse_spans("*a* and *b* but ~c~")
    assert coloured(spans, Tone.GOLD) == ["a", "b"]
    assert coloured(spans, Tone.RED) == ["c"]
