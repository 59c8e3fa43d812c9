from patternlab.patterns import PatternNode, PatternTree
from patternlab.store import ResultStore


def _tree(value: int = 1) -> PatternTree:
    return PatternTree((PatternNode("a", "u8", 0, 1, value=value),))


def test_starts_empty() -> None:
    store = ResultStore()

    assert store.empty
    assert store.current() is None


def test_replace_discards_previous_tree() -> None:
    store = ResultStore()
    first, second = _tree(1), _tree(2)

    store.replace(first)
    store.replace(second)

    assert store.current() is second
    assert not store.empty


def test_clear_leaves_store_empty() -> None:
    store = ResultStore()
    store.replace(_tree())

    store.clear()
    store.clear()

    assert store.empty
    assert store.current() is None
