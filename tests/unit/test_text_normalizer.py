# --------------------------- tests/unit/test_text_normalizer.py ----------------------------
"""
Broker Intelligence · Text Normalizer Tests

Covers markup stripping, entity decoding, whitespace collapsing and the
HTML table parser used as a lane fallback.
"""

from broker_intel.utils.text_normalizer import normalize, normalize_message, parse_html_table


def test_empty_input_gives_empty_string():
    assert normalize(None) == ""
    assert normalize("") == ""


def test_html_becomes_plain_text_with_line_breaks():
    html = "<p>Rate:&nbsp;$1,500</p><br>Dallas &amp; Co"
    assert normalize(html) == "Rate: $1,500\n\nDallas & Co"


def test_script_and_style_blocks_are_dropped():
    html = "<style>p { color: red; }</style><script>alert('x')</script><p>Hello</p>"
    assert normalize(html) == "Hello"


def test_entities_decode_after_tags_are_stripped():
    # An escaped tag must survive as text
    assert normalize("Use &lt;b&gt; for bold") == "Use <b> for bold"


def test_table_cells_are_pipe_separated():
    html = "<table><tr><td>Dallas, TX</td><td>Memphis, TN</td></tr></table>"
    assert "Dallas, TX | Memphis, TN" in normalize(html)


def test_whitespace_collapses():
    text = "Load\u200b   available\t\there\n\n\n\n\nRate:\xa0$900  "
    assert normalize(text) == "Load available here\n\nRate: $900"


def test_normalize_message_prefers_plain_text():
    assert normalize_message("Subj", "plain body", "<b>html body</b>") == "Subj\nplain body"
    assert normalize_message("Subj", None, "<b>html body</b>") == "Subj\nhtml body"
    assert normalize_message("Subj", "   ", "<b>html body</b>") == "Subj\nhtml body"
    assert normalize_message(None) == ""


def test_parse_html_table_with_header():
    html = """
    <table>
      <tr><th>Origin</th><th>Destination</th><th>Rate</th></tr>
      <tr><td>Dallas, TX</td><td>Memphis, TN</td><td>$1,200</td></tr>
    </table>
    """
    rows = parse_html_table(html)
    assert rows == [{"origin": "Dallas, TX", "destination": "Memphis, TN", "rate": "$1,200"}]


def test_parse_html_table_without_header_uses_column_keys():
    html = "<table><tr><td>A</td><td>B</td></tr></table>"
    assert parse_html_table(html) == [{"col0": "A", "col1": "B"}]


def test_parse_html_table_without_table():
    assert parse_html_table("<p>No table here</p>") == []
    assert parse_html_table(None) == []


def test_markup_inside_attributes_does_not_leak():
    assert normalize('<td title="a>b">Dallas, TX</td>') == "| Dallas, TX"
    assert normalize('<span data-x="1 > 0">Reefer</span> load') == "Reefer load"


def test_plain_text_comparisons_are_not_treated_as_tags():
    assert normalize("Rate < $2.00/mi & miles > 400") == "Rate < $2.00/mi & miles > 400"


def test_parse_html_table_skips_layout_tables():
    html = (
        "<table><tr><td><table><tr><td>inner</td></tr></table></td></tr></table>"
        "<table><tr><th>Origin</th><th>Destination</th></tr>"
        "<tr><td>Dallas, TX</td><td>Memphis, TN</td></tr></table>"
    )
    assert parse_html_table(html) == [{"origin": "Dallas, TX", "destination": "Memphis, TN"}]


def test_parse_html_table_ignores_script_and_entities():
    html = ("<script>var t = '<table>';</script>"
            "<table><tr><td>Dallas&nbsp;&amp;&nbsp;Fort Worth, TX</td></tr></table>")
    assert parse_html_table(html) == [{"col0": "Dallas & Fort Worth, TX"}]
