"""
Plain-text readers for the CLI.

Token file: one token per line, whitespace separated
    word_id doc_id is_toponym [is_stopword]
Toponym filter file: one toponym word per line
    word_id region region ...
Lexicon file: one word per line
    word_id<TAB>word
Blank lines and lines starting with '#' are skipped everywhere.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

import numpy as np

from region_geo.corpus import TokenStream
from region_geo.errors import DimensionMismatch
from region_geo.filters import toponym_filter_from_regions

logger = logging.getLogger(__name__)


def _rows(path: Path) -> Iterator[tuple[int, list[str]]]:
    with path.open("r", encoding="utf-8") as f:
        for lineno, line in enumerate(f, 1):
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            yield lineno, line.split()


def read_token_file(path: Path, vocab_size: int = 0, doc_count: int = 0) -> TokenStream:
    records: list[tuple[int, int, bool, bool]] = []
    for lineno, fields in _rows(path):
        if len(fields) < 3:
            raise DimensionMismatch(f"{path}:{lineno}: expected at least 3 fields, got {len(fields)}")
        stop = len(fields) > 3 and int(fields[3]) != 0
        records.append((int(fields[0]), int(fields[1]), int(fields[2]) != 0, stop))

    corpus = TokenStream.from_records(records, vocab_size=vocab_size, doc_count=doc_count)
    logger.info("Read %d tokens (%d non-stopword) in %d documents from %s", corpus.N, corpus.n_active, corpus.D, path)
    return corpus


def read_toponym_filter(path: Path, n_words: int, n_regions: int) -> np.ndarray:
    word_regions: dict[int, list[int]] = {}
    for _, fields in _rows(path):
        word_regions.setdefault(int(fields[0]), []).extend(int(r) for r in fields[1:])
    return toponym_filter_from_regions(word_regions, n_words, n_regions)


def read_lexicon(path: Path) -> dict[int, str]:
    lexicon: dict[int, str] = {}
    with path.open("r", encoding="utf-8") as f:
        for lineno, line in enumerate(f, 1):
            line = line.rstrip("\n")
            if not line.strip() or line.startswith("#"):
                continue
            word_id, sep, word = line.partition("\t")
            if not sep:
                raise DimensionMismatch(f"{path}:{lineno}: expected 'word_id<TAB>word'")
            lexicon[int(word_id)] = word
    return lexicon
