'''Post-processing for generated listing copy.'''
from __future__ import annotations
import re

BOILERPLATE_PHRASE = 'Köket är praktiskt utformat för vardagens behov och badrummet följer bostadens funktionella standard.'

# Whitespace inside the phrase is matched loosely so collapsing spaces later can never re-create it.
_BOILERPLATE_RE = re.compile('\\s+'.join(re.escape(word) for word in BOILERPLATE_PHRASE.split()), re.IGNORECASE)
_SENTENCE_BREAK_RE = re.compile('([.!?])\\s+(?=[A-ZÅÄÖÉÜ])')


def strip_boilerplate(text):
    '''Remove every case-insensitive occurrence of the known filler sentence.'''
    while True:
        stripped = _BOILERPLATE_RE.sub('', text)
        if stripped == text:
            return stripped
        text = stripped


def collapse_whitespace(text):
    '''Collapse runs of spaces on each line while keeping the line breaks.'''
    lines = [' '.join(line.split()) for line in text.split('\n')]
    return '\n'.join(lines).strip()


def add_paragraph_breaks(text):
    '''Turn every second sentence break into a blank line without touching the wording.'''
    count = 0

    def _replace(match):
        nonlocal count
        count += 1
        if count % 2 == 0:
            return match.group(1) + '\n\n'
        return match.group(1) + ' '

    return _SENTENCE_BREAK_RE.sub(_replace, text)


def sanitize_content(text = None):
    '''Strip boilerplate, normalise whitespace and paragraph the copy. Idempotent.'''
    if not text:
        return ''
    cleaned = strip_boilerplate(text)
    cleaned = collapse_whitespace(cleaned)
    return add_paragraph_breaks(cleaned)

__all__ = [
    'BOILERPLATE_PHRASE',
    'add_paragraph_breaks',
    'collapse_whitespace',
    'sanitize_content',
    'strip_boilerplate']
