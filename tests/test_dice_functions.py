import itertools
import warnings
from fractions import Fraction

import pytest

import die as die_module
from die import die
from dice_functions import (d, nd, ndm, pair, pool, interpret, reroll, normalize, get,
    set_weight, sum_outcomes, count_at_least, keep_highest, keep_lowest, opposed,
    highest, lowest, adv, dis)
from stats import mean, median, frequencies


def brute_force(rule, sides_list):
    """Exact distribution of rule(rolls) over every joint roll, as Fractions."""
    out = {}
    combos = list(itertools.product(*[range(1, s + 1) for s in sides_list]))
    for rolls in combos:
        value = rule(rolls)
        out[value] = out.get(value, 0) + Fraction(1, len(combos))
    return out


def assert_matches(x, expected):
    assert len(x) == len(expected)
    for outcome, weight in expected.items():
        assert x.get(outcome) == pytest.approx(float(weight))


# ----------------------------
# construction
# ----------------------------

@pytest.mark.parametrize('sides', [1, 2, 6, 20, 100])
def test_d_is_uniform(sides):
    x = d(sides)
    assert len(x) == sides
    assert all(x.get(i) == pytest.approx(1/sides) for i in range(1, sides + 1))
    assert x.total() == pytest.approx(1.0)


def test_d6_end_to_end():
    assert d(6).entries() == [(i, 1/6) for i in range(1, 7)]


def test_d_rejects_zero_sides():
    with pytest.raises(ValueError):
        d(0)


def test_nd():
    dice = nd(3, 8)
    assert len(dice) == 3
    assert all(x._equals(d(8)) for x in dice)
    assert len({id(x) for x in dice}) == 3
    assert nd(0, 6) == []


@pytest.mark.parametrize('count, sides, error', [
    (-1, 6, ValueError),
    (2, 0, ValueError),
    (0, 0, ValueError),
    (1.5, 6, TypeError),
])
def test_nd_rejects_bad_arguments(count, sides, error):
    with pytest.raises(error):
        nd(count, sides)


def test_get_and_set_weight():
    x = d(4)
    assert get(x, 9) is None
    assert set_weight(x, 9, 0.5) is x
    assert get(x, 9) == 0.5


# ----------------------------
# pair
# ----------------------------

def test_pair_total_is_product_of_totals():
    a = die({1: 2.0, 2: 1.0})
    b = die({'x': 0.5, 'y': 0.25, 'z': 1.0})
    out = pair(lambda p, q: (p, q), a, b)
    assert len(out) == 6
    assert out.total() == pytest.approx(a.total() * b.total())


def test_pair_is_not_assumed_commutative():
    out = pair(lambda a, b: a - b, d(2), die.constant(0))
    assert sorted(out.outcomes()) == [1, 2]
    out = pair(lambda a, b: a - b, die.constant(0), d(2))
    assert sorted(out.outcomes()) == [-2, -1]


def test_pair_leaves_inputs_alone():
    a, b = d(6), d(6)
    pair(max, a, b)
    assert a._equals(d(6)) and b._equals(d(6))


def test_opposed_example():
    out = pair(opposed, d(20) + 3, d(20) + 5)
    # the attacker needs to roll at least 3 more than the defender
    assert out.get(1) == pytest.approx(153/400)
    assert out.get(0) == pytest.approx(247/400)


# ----------------------------
# pool
# ----------------------------

def test_pool_of_nothing_is_initial():
    out = pool(sum_outcomes, 0, [])
    assert out.entries() == [(0, 1.0)]
    marker = ['start']
    assert pool(sum_outcomes, marker, []).entries() == [(marker, 1.0)]


def test_pool_of_one_die_matches_interpret():
    rule = lambda acc, outcome: acc + outcome * 10
    x = die({1: 0.2, 2: 0.3, 3: 0.5})
    assert pool(rule, 7, [x])._equals(interpret(lambda o: rule(7, o), x))


def test_2d6_end_to_end():
    out = pool(sum_outcomes, 0, nd(2, 6))
    expected = {2: 1, 3: 2, 4: 3, 5: 4, 6: 5, 7: 6, 8: 5, 9: 4, 10: 3, 11: 2, 12: 1}
    assert len(out) == 11
    for total, ways in expected.items():
        assert out.get(total) == pytest.approx(ways/36)


def test_12d6_successes_end_to_end():
    out = normalize(pool(count_at_least(5), 0, nd(12, 6)))
    assert len(out) == 13
    assert mean(out) == pytest.approx(4.0)
    assert median(out) == 4
    freq = frequencies(out)
    assert freq[0] == pytest.approx(0.00771, abs=1e-5)
    assert freq[6] == pytest.approx(0.11127, abs=1e-5)
    assert freq[12] == pytest.approx(1.88e-6, rel=1e-2)


def test_pool_folds_left_to_right():
    out = pool(lambda acc, outcome: acc + [outcome], [], [die.constant('a'), die.constant('b')])
    assert out.entries() == [(['a', 'b'], 1.0)]


def test_pool_hands_each_branch_its_own_accumulator():
    def append(history, outcome):
        history.append(outcome)
        return history
    out = pool(append, [], nd(2, 2))
    assert len(out) == 4
    for rolls in ([1, 1], [1, 2], [2, 1], [2, 2]):
        assert out.get(rolls) == pytest.approx(0.25)


def test_pool_does_not_touch_initial():
    initial = []
    pool(lambda acc, outcome: acc.append(outcome) or acc, initial, nd(3, 2))
    assert initial == []


def test_pool_merges_every_step(capsys, monkeypatch):
    monkeypatch.setattr(die_module, 'PRINT_POOL_SIZES', [True])
    pool(count_at_least(5), 0, nd(4, 6))
    lines = capsys.readouterr().out.splitlines()
    # a count after k dice takes k+1 values, never 6**k
    assert lines == [f'pool step {k}: {k + 1} distinct values' for k in range(1, 5)]


def test_pool_accepts_any_iterable():
    out = pool(sum_outcomes, 0, (d(4) for _ in range(2)))
    assert out._equals(pool(sum_outcomes, 0, nd(2, 4)))


def test_large_collapsing_pool_stays_small():
    out = pool(count_at_least(6), 0, nd(300, 6))
    assert len(out) == 301
    assert out.total() == pytest.approx(1.0)


def test_mixed_pool_matches_brute_force():
    out = pool(sum_outcomes, 0, nd(3, 4) + nd(2, 6) + nd(1, 8))
    assert_matches(out, brute_force(sum, [4, 4, 4, 6, 6, 8]))


def test_keep_highest_matches_brute_force():
    out = interpret(sum, pool(keep_highest(3), [], nd(4, 6)))
    assert_matches(out, brute_force(lambda rolls: sum(sorted(rolls)[-3:]), [6]*4))


def test_keep_highest_collapses_to_kept_dice():
    out = pool(keep_highest(2), [], nd(5, 3))
    # sorted pairs from {1, 2, 3}
    assert len(out) == 6
    assert out.get([3, 3]) == pytest.approx(1 - (5*(1/3)*(2/3)**4 + (2/3)**5))


def test_keep_lowest_matches_brute_force():
    out = interpret(sum, pool(keep_lowest(2), [], nd(3, 6)))
    assert_matches(out, brute_force(lambda rolls: sum(sorted(rolls)[:2]), [6]*3))


def test_highest_and_lowest():
    assert adv(d(20)).get(20) == pytest.approx(39/400)
    assert dis(d(20)).get(20) == pytest.approx(1/400)
    assert highest(d(6), 3)._equals(interpret(max, pool(lambda a, o: a + [o], [], nd(3, 6))))
    assert lowest(d(6), 1)._equals(d(6))
    assert str(adv(d(20))) == 'adv(1d20)'


def test_ndm():
    x = ndm(3, 6)
    assert str(x) == '3d6'
    assert x.get(10) == pytest.approx(27/216)


# ----------------------------
# interpret / reroll
# ----------------------------

def test_interpret_identity():
    x = die({1: 0.1, 'two': 0.2, (3,): 0.7})
    assert interpret(lambda o: o, x)._equals(x)


def test_interpret_merges_and_keeps_total():
    out = interpret(lambda o: o % 2 == 0, d(6))
    assert len(out) == 2
    assert out.get(True) == pytest.approx(0.5)
    assert out.total() == pytest.approx(1.0)


def test_interpret_merges_composite_results():
    out = interpret(lambda o: [o // 3], d(6))
    assert len(out) == 3
    assert out.get([1]) == pytest.approx(0.5)


def test_reroll_ones_once():
    out = reroll(lambda v: d(6) if v == 1 else die.constant(v), d(6))
    assert out.total() == pytest.approx(1.0)
    assert out.get(1) == pytest.approx(1/36)
    assert out.get(4) == pytest.approx(1/6 + 1/36)


def test_reroll_branches_merge():
    out = reroll(lambda v: d(2), d(3))
    assert len(out) == 2
    assert out.get(1) == pytest.approx(0.5)


def test_reroll_leaves_input_alone():
    x = d(4)
    reroll(lambda v: d(v), x)
    assert x._equals(d(4))


def test_reroll_unnormalized_branch_warns():
    with pytest.warns(RuntimeWarning):
        out = reroll(lambda v: die({v: 2.0}), d(2))
    assert out.total() == pytest.approx(2.0)


def test_reroll_validate_raises():
    with pytest.raises(ValueError):
        reroll(lambda v: die({v: 2.0}), d(2), validate=True)


def test_reroll_normalized_branches_do_not_warn():
    with warnings.catch_warnings():
        warnings.simplefilter('error')
        reroll(lambda v: d(v), d(5), validate=True)


def test_reroll_requires_a_die():
    with pytest.raises(TypeError):
        reroll(lambda v: v, d(2))


# ----------------------------
# accumulators
# ----------------------------

def test_accumulators_directly():
    assert sum_outcomes(3, 4) == 7
    assert count_at_least(5)(2, 5) == 3
    assert count_at_least(5)(2, 4) == 2
    assert keep_highest(2)([3, 5], 4) == [4, 5]
    assert keep_lowest(2)([3, 5], 4) == [3, 4]
    assert keep_highest(0)([], 4) == []
    assert opposed(5, 5) == 0
    assert opposed(6, 5) == 1
