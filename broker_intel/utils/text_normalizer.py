# --------------------------- broker_intel/utils/text_normalizer.py ----------------------------
"""
Broker Intelligence · Text Normalizer

OVERVIEW:
Turns broker email bodies (plain text or HTML) into one consistent plain-text
form. Everything downstream (broker identification, load extraction) reads the
output of this module.

CLEANING OPERATIONS:
- Drop <script> and <style> blocks
- Turn line breaks, paragraph/div/row ends into newlines and cells into " | "
- Strip the remaining tags and decode entities
- Collapse repeated spaces/tabs and blank lines

Markup is parsed with BeautifulSoup's html.parser; plain text only gets the
fixed entity table. All functions are pure and never raise; empty input gives
an empty string.

DEPENDENCIES:
- beautifulsoup4 for HTML parsing
"""

import re
from typing import Dict, List, Optional

from bs4 import BeautifulSoup

_MARKUP_RE = re.compile(r'<(?:[A-Za-z][A-Za-z0-9]*\b|/[A-Za-z]|!--)')

ENTITIES = (
    ('&nbsp;', ' '),
    ('&amp;', '&'),
    ('&lt;', '<'),
    ('&gt;', '>'),
    ('&quot;', '"'),
    ('&#39;', "'"),
    ('&rsquo;', "'"),
)

LINE_BREAK_TAGS = ['p', 'div', 'tr']


def looks_like_html(text: str) -> bool:
    return bool(_MARKUP_RE.search(text))


def _soup(html: str) -> BeautifulSoup:
    soup = BeautifulSoup(html, 'html.parser')
    for tag in soup(['script', 'style']):
        tag.decompose()
    return soup


def _html_to_text(html: str) -> str:
    soup = _soup(html)
    for br in soup.find_all('br'):
        br.replace_with('\n')
    for cell in soup.find_all('td'):
        cell.insert_before(' | ')
    for block in soup.find_all(LINE_BREAK_TAGS):
        block.append('\n')
    return soup.get_text(separator=' ')


def _decode_entities(text: str) -> str:
    for entity, char in ENTITIES:
        text = text.replace(entity, char)
    return text


def _collapse_whitespace(text: str) -> str:
    text = text.replace('\u200b', '')  # Zero-width space
    text = text.replace('\xa0', ' ')   # Non-breaking space
    text = text.replace('\r\n', '\n').replace('\r', '\n')

    text = re.sub(r'[ \t\f\v]+', ' ', text)
    text = re.sub(r' *\n *', '\n', text)
    text = re.sub(r'\n{3,}', '\n\n', text)
    return text.strip()


def normalize(raw: Optional[str]) -> str:
    """
    Convert raw message content into normalized plain text.

    ARGS:
        raw: Plain text or HTML body (None is treated as empty)

    RETURNS:
        str: Normalized text, never None
    """
    if not raw:
        return ''
    if looks_like_html(raw):
        text = _html_to_text(raw)
    else:
        text = _decode_entities(raw)
    return _collapse_whitespace(text)


def normalize_message(subject: Optional[str], body_text: Optional[str] = None,
                      body_html: Optional[str] = None) -> str:
    """
    Build the extraction text for a message: subject on the first line,
    normalized body below. Plain text wins over markup when both exist.
    """
    body = body_text if body_text and body_text.strip() else body_html
    return f"{normalize(subject)}\n{normalize(body)}".strip()


def _own_rows(table) -> List:
    """Rows of this table, skipping rows of tables nested inside it."""
    return [row for row in table.find_all('tr') if row.find_parent('table') is table]


def _cell_text(cell) -> str:
    return _collapse_whitespace(cell.get_text(separator=' '))


def _is_data_table(table) -> bool:
    return table.find('table') is None and any(
        row.find(['td', 'th'], recursive=False) for row in _own_rows(table)
    )


def parse_html_table(html: Optional[str]) -> List[Dict[str, str]]:
    """
    Parse the first data table in a message into row dictionaries.

    TABLE HANDLING:
    - Layout tables that wrap other tables are skipped
    - A table whose first row is made of <th> cells is preferred over one
      without a header
    - The header row names the columns (lower-cased)
    - Each <td> row becomes a dict keyed by header, or col0, col1, ... when
      no header exists
    """
    if not html:
        return []

    candidates = [table for table in _soup(html).find_all('table') if _is_data_table(table)]
    if not candidates:
        return []

    def has_header(table) -> bool:
        first = _own_rows(table)[0].find_all(['td', 'th'], recursive=False)
        return bool(first) and all(cell.name == 'th' for cell in first)

    table = next((candidate for candidate in candidates if has_header(candidate)), candidates[0])

    rows: List[Dict[str, str]] = []
    headers: List[str] = []
    for index, tr in enumerate(_own_rows(table)):
        cells = tr.find_all(['td', 'th'], recursive=False)
        if index == 0 and cells and all(cell.name == 'th' for cell in cells):
            headers = [_cell_text(cell).lower() for cell in cells]
            continue

        td_cells = [cell for cell in cells if cell.name == 'td']
        row = {}
        for cell_index, td in enumerate(td_cells):
            key = headers[cell_index] if cell_index < len(headers) else f"col{cell_index}"
            row[key] = _cell_text(td)
        if row:
            rows.append(row)

    return rows
