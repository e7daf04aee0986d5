import pytest

from ckpoolkit.util import (
    PAGESIZE,
    align_len,
    json_array_string,
    json_object_dup,
    round_up_page,
    trail_slash,
)


@pytest.mark.parametrize("n", range(0, 40))
def test_align_len_invariants(n):
    out = align_len(n)
    assert out % 4 == 0
    assert n <= out < n + 4


def test_align_len_keeps_aligned():
    assert align_len(12) == 12


def test_round_up_page_values():
    assert round_up_page(1) == 4096
    assert round_up_page(PAGESIZE) == PAGESIZE
    assert round_up_page(0) == 0


@pytest.mark.parametrize("n", [1, 100, 4095, 4097, 10000, 123456])
def test_round_up_page_invariants(n):
    out = round_up_page(n)
    assert out % PAGESIZE == 0
    assert n <= out < n + PAGESIZE


def test_trail_slash():
    assert trail_slash("/tmp") == "/tmp/"
    assert trail_slash("/tmp/") == "/tmp/"
    assert trail_slash(trail_slash("dir")) == "dir/"


def test_json_array_string_found():
    assert json_array_string(["a", 1, "b"], 0) == "a"
    assert json_array_string(["a", 1, "b"], 2) == "b"


@pytest.mark.parametrize(
    "val,entry",
    [(None, 0), ({"a": "b"}, 0), (["a"], 1), (["a"], 5), ([1], 0), (["a"], -1)],
)
def test_json_array_string_missing(val, entry):
    assert json_array_string(val, entry) is None


def test_json_object_dup_is_copy():
    inner = [1, 2, {"x": 3}]
    obj = {"k": inner}
    dup = json_object_dup(obj, "k")
    assert dup == inner
    assert dup is not inner
    dup.append(4)
    assert len(inner) == 3


def test_json_object_dup_missing():
    assert json_object_dup({"k": 1}, "other") is None
    assert json_object_dup(["k"], "k") is None