from consolekit.intern import InternedStr, Strings


def test_same_string_returns_same_handle():
    strings = Strings()
    a = strings.string("tokio::task")
    b = strings.string("tokio::task")
    assert a is b
    assert len(strings) == 1


def test_distinct_strings_are_distinct():
    strings = Strings()
    a = strings.string("alpha")
    b = strings.string("beta")
    assert a != b
    assert len(strings) == 2
    assert "alpha" in strings and "beta" in strings


def test_interned_str_compares_and_hashes_like_str():
    s = InternedStr("hello")
    assert s == "hello"
    assert s == InternedStr("hello")
    assert hash(s) == hash("hello")
    assert str(s) == "hello"
    assert len(s) == len("hello")
    assert {s: 1}["hello"] == 1


def test_interned_str_ordering():
    items = sorted([InternedStr("b"), InternedStr("a"), InternedStr("c")])
    assert [str(i) for i in items] == ["a", "b", "c"]
    assert InternedStr("a") < "b"


def test_retain_referenced_drops_unreferenced():
    strings = Strings()
    kept = strings.string("kept")
    strings.string("dropped")
    strings.retain_referenced()
    assert "kept" in strings
    assert "dropped" not in strings
    assert len(strings) == 1
    assert strings.string("kept") is kept


def test_retain_referenced_after_release():
    strings = Strings()
    handle = strings.string("temp")
    strings.retain_referenced()
    assert "temp" in strings
    del handle
    strings.retain_referenced()
    assert "temp" not in strings
    assert len(strings) == 0


def test_contains_accepts_interned_and_rejects_other_types():
    strings = Strings()
    handle = strings.string("x")
    assert handle in strings
    assert 5 not in strings