from typing import Any, Callable, Dict, Iterable, Iterator, List, Sequence

Row = Dict[str, Any]


class Table:
    """Immutable list of dict rows with the few relational operators the pivot needs."""

    def __init__(self, rows: Iterable[Row] = ()):
        self._rows = tuple(dict(r) for r in rows)

    def __iter__(self) -> Iterator[Row]:
        return iter(self._rows)

    def __len__(self) -> int:
        return len(self._rows)

    def __getitem__(self, i) -> Row:
        return self._rows[i]

    def __repr__(self):
        return f"Table({len(self)} rows)"

    def filter(self, predicate: Callable[[Row], bool]) -> "Table":
        return Table(r for r in self._rows if predicate(r))

    def distinct(self, keys: Sequence[str]) -> "Table":
        """Keep the first row for each combination of `keys`."""
        seen = set()
        out = []
        for r in self._rows:
            k = tuple(r.get(key) for key in keys)
            if k in seen:
                continue
            seen.add(k)
            out.append(r)
        return Table(out)

    def sort(self, key: str) -> "Table":
        """Stable sort on one column."""
        return Table(sorted(self._rows, key=lambda r: r[key]))

    def join_save_all(self, secondary: "Table", key: str, matches_key: str = "matches") -> "Table":
        """
        For every primary row, attach the list of secondary rows sharing the
        same `key` value under `matches_key`. Primary rows without matches
        get an empty list.
        """
        index: Dict[Any, List[Row]] = {}
        for r in secondary:
            index.setdefault(r[key], []).append(r)
        return Table(
            {**r, matches_key: list(index.get(r[key], []))} for r in self._rows
        )
