"""Tests for natural ordering, shuffling and favourite interleaving."""

import random
from pathlib import Path

import pytest

from slidestack.ordering import interleave, natural_sort_key, order_entries

def paths(*names):
    return [Path(n) for n in names]

def test_natural_order():
    entries = paths("img10.png", "img2.png", "img1.png")
    assert order_entries(entries, randomize=False) == paths("img1.png", "img2.png", "img10.png")

def test_natural_order_uses_file_name_only():
    entries = [Path("/z/b2.jpg"), Path("/a/b10.jpg"), Path("/m/b1.jpg")]
    ordered = order_entries(entries, randomize=False)
    assert [p.name for p in ordered] == ["b1.jpg", "b2.jpg", "b10.jpg"]

def test_natural_order_leading_zeros_and_case():
    entries = paths("IMG_010.jpg", "img_9.jpg", "img_0001.jpg")
    assert [p.name for p in order_entries(entries, False)] == ["img_0001.jpg", "img_9.jpg", "IMG_010.jpg"]

def test_natural_key_handles_leading_digits():
    # Names starting with a digit must compare against names that don't
    entries = paths("b.png", "10.png", "2.png", "a1.png")
    assert [p.name for p in order_entries(entries, False)] == ["2.png", "10.png", "a1.png", "b.png"]

def test_natural_key_is_total_for_equal_values():
    assert natural_sort_key(Path("img01.png")) != natural_sort_key(Path("img1.png"))

def test_order_does_not_mutate_input():
    entries = paths("b.png", "a.png")
    order_entries(entries, randomize=False)
    order_entries(entries, randomize=True, rng=random.Random(1))
    assert entries == paths("b.png", "a.png")

def test_shuffle_is_a_permutation():
    entries = paths(*[f"{i}.png" for i in range(50)])
    shuffled = order_entries(entries, randomize=True, rng=random.Random(1234))
    assert sorted(shuffled) == sorted(entries)
    assert shuffled != entries

def test_shuffle_with_same_seed_is_repeatable():
    entries = paths(*[f"{i}.png" for i in range(20)])
    a = order_entries(entries, True, random.Random(7))
    b = order_entries(entries, True, random.Random(7))
    assert a == b

def test_interleave_every_two():
    a, b, c, d, e, f = paths("a", "b", "c", "d", "e", "f")
    result = interleave([a, b, c, d, e, f], [c, e], 2)
    assert result == [a, b, c, d, f, e]

def test_interleave_is_pure():
    main = paths("a", "b", "c", "d", "e", "f")
    favs = paths("c", "e")
    assert interleave(main, favs, 2) == interleave(main, favs, 2)
    assert main == paths("a", "b", "c", "d", "e", "f")
    assert favs == paths("c", "e")

def test_interleave_favourites_follow_multiples_of_n():
    main = paths(*"abcdefghij")
    favs = paths("b", "j")
    result = interleave(main, favs, 3)
    non_favs_before = [
        sum(1 for p in result[:result.index(f)] if p not in favs) for f in favs
    ]
    assert non_favs_before == [3, 6]

def test_interleave_leftover_favourites_appended_in_order():
    a, b, c, d = paths("a", "b", "c", "d")
    assert interleave([a, b, c, d], [d, c, b], 5) == [a, d, c, b]

def test_interleave_drops_stale_favourites():
    a, b, c = paths("a", "b", "c")
    assert interleave([a, b, c], [Path("gone"), b], 1) == [a, b, c]

def test_interleave_every_one():
    a, b, c, d = paths("a", "b", "c", "d")
    assert interleave([a, b, c, d], [d, b], 1) == [a, d, c, b]

@pytest.mark.parametrize("every_n", [None, 0])
def test_interleave_disabled(every_n):
    main = paths("a", "b", "c")
    assert interleave(main, paths("b"), every_n) == main

def test_interleave_negative_rejected():
    with pytest.raises(ValueError):
        interleave(paths("a"), paths("a"), -1)

def test_interleave_no_favourites():
    main = paths("a", "b", "c")
    assert interleave(main, [], 2) == main
