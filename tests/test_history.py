from watchgpt.history import trim


def test_trimmed_history_caps_to_max():
    messages = [f"msg-{i}" for i in range(30)]
    trimmed = trim(messages, 16)
    assert len(trimmed) == 16
    assert trimmed[0] == "msg-14"
    assert trimmed[-1] == "msg-29"


def test_small_max_returns_suffix():
    items = [f"item-{i}" for i in range(5)]
    assert trim(items, 2) == ["item-3", "item-4"]


def test_length_is_min_of_length_and_bound():
    items = list(range(7))
    for bound in range(1, 12):
        trimmed = trim(items, bound)
        assert len(trimmed) == min(len(items), bound)
        assert list(trimmed) == items[len(items) - len(trimmed):]


def test_non_positive_bound_returns_input():
    items = ["a", "b", "c"]
    assert trim(items, 0) is items
    assert trim(items, -3) is items


def test_within_bound_returns_input():
    items = ["a", "b"]
    assert trim(items, 2) is items
    assert trim(items, 10) is items


def test_empty_and_tuple_inputs():
    assert trim([], 4) == []
    assert trim((1, 2, 3, 4), 2) == (3, 4)
