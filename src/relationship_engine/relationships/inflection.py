"""
Word inflection for table-name matching

Table names are matched against column prefixes in singular and plural form
(user_id -> users). The rules live behind a small interface so irregular
nouns can be special-cased per schema without touching the inferrer.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, Optional

import inflect


class Inflector(ABC):
    """Singular/plural conversion for lower-cased identifiers"""

    @abstractmethod
    def pluralize(self, word: str) -> str:
        pass

    @abstractmethod
    def singularize(self, word: str) -> str:
        pass


class InflectInflector(Inflector):
    """
    Inflector backed by the ``inflect`` package

    ``overrides`` maps singular -> plural and wins over the library in both
    directions, e.g. {"person": "people", "status": "statuses"}.
    """

    def __init__(self, overrides: Optional[Dict[str, str]] = None):
        self._engine = inflect.engine()
        self._plurals = {k.lower(): v.lower() for k, v in (overrides or {}).items()}
        self._singulars = {v: k for k, v in self._plurals.items()}

    def pluralize(self, word: str) -> str:
        word = word.lower()
        if word in self._plurals:
            return self._plurals[word]
        if word in self._singulars:
            return word
        return self._engine.plural_noun(word) or word

    def singularize(self, word: str) -> str:
        word = word.lower()
        if word in self._singulars:
            return self._singulars[word]
        if word in self._plurals:
            return word
        # singular_noun returns False for words it considers singular already
        return self._engine.singular_noun(word) or word
