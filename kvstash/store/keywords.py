"""Inverted keyword index over cache keys.

Maps each search keyword to the set of keys tagged with it. Sets are kept
as insertion-ordered dicts so search results come back in a stable order.
"""


class KeywordIndex:
    """Keyword -> keys index with AND/OR search."""

    def __init__(self, initial: dict[str, list[str]] | None = None):
        self._index: dict[str, dict[str, None]] = {}
        if initial:
            self.load(initial)

    def add_tag(self, keyword: str, key: str):
        """Tag ``key`` with ``keyword``. Adding the same pair twice is a no-op."""
        self._index.setdefault(keyword, {})[key] = None

    def remove_key(self, key: str):
        """Drop ``key`` from every keyword, removing keywords left empty."""
        for keyword in list(self._index):
            keys = self._index[keyword]
            if key in keys:
                del keys[key]
                if not keys:
                    del self._index[keyword]

    def search(self, keywords: list[str], logic: str = "OR") -> list[str]:
        """Return keys matching ``keywords``.

        An empty keyword list matches nothing. ``logic="AND"`` intersects
        the keyword sets; anything else (including unknown values) unions them.
        """
        if not keywords:
            return []

        key_sets = [self._index.get(kw, {}) for kw in keywords]

        if str(logic).upper() == "AND":
            first, rest = key_sets[0], key_sets[1:]
            return [k for k in first if all(k in s for s in rest)]

        union: dict[str, None] = {}
        for s in key_sets:
            union.update(s)
        return list(union)

    def keywords_for(self, key: str) -> list[str]:
        return [kw for kw, keys in self._index.items() if key in keys]

    def load(self, mapping: dict[str, list[str]]):
        """Replace the index contents with a serialized mapping."""
        self._index = {kw: dict.fromkeys(keys) for kw, keys in mapping.items() if keys}

    def to_dict(self) -> dict[str, list[str]]:
        return {kw: list(keys) for kw, keys in self._index.items()}

    def __contains__(self, keyword: str) -> bool:
        return keyword in self._index

    def __len__(self) -> int:
        return len(self._index)
