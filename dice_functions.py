'''User-facing functions'''
from typing import Any, Callable, Iterable
from die import die, uniform, check_count
import die as _die

def d(sides: int) -> die:
    '''
    Returns the distribution of a single fair die with the given number of sides,
    so d(6) is 1 through 6 with probability 1/6 each.
    sides: A positive integer
    Returns a new die class object.
    '''
    return uniform(sides)

def nd(count: int, sides: int) -> list[die]:
    '''
    Returns a list of count independent dice with the given number of sides, ready to be
    handed to pool(). nd(0, 6) is an empty list.
    Ex: pool(sum_outcomes, 0, nd(3, 6)) is the distribution of 3d6.
    count: A non-negative integer
    sides: A positive integer
    '''
    check_count(count, 'Number of dice', 0)
    check_count(sides, 'Number of sides', 1)
    return [uniform(sides) for _ in range(count)]

def ndm(count: int, sides: int) -> die:
    '''
    Returns the distribution of rolling count dice with the given number of sides and
    adding them up, so ndm(3, 6) is 3d6.
    '''
    out = pool(sum_outcomes, 0, nd(count, sides))
    out.name = f'{count}d{sides}'
    return out

def pair(combine: Callable[[Any, Any], Any], x: die, y: die) -> die:
    '''
    Returns the distribution of combine(a, b) for a sample a from x and b from y.
    Ex: pair(max, d(20), d(20)) is rolling with advantage.
    '''
    return _die.pair(combine, x, y)

def pool(accumulate: Callable[[Any, Any], Any], initial: Any, dice: Iterable[die]) -> die:
    '''
    Combines a pool of dice into one distribution using an arbitrary aggregation rule.
    accumulate: A function (accumulator, outcome) -> accumulator. It's applied to the dice
        one at a time, in order, and may modify the accumulator in place.
    initial: The starting accumulator value.
    dice: The dice to fold in, ie nd(12, 6) or nd(3, 4) + nd(2, 6).
    Ex: pool(count_at_least(5), 0, nd(12, 6)) counts 5s and 6s on 12d6.
    Returns a new die class object.
    '''
    return _die.pool(accumulate, initial, dice)

def interpret(f: Callable[[Any], Any], x: die) -> die:
    '''
    Re-interprets the outcomes of x with f, merging outcomes that map to the same value.
    Ex: interpret(sum, pool(keep_highest(3), [], nd(4, 6))) is 4d6 drop lowest.
    '''
    return x.interpret(f)

def reroll(f: Callable[[Any], die], x: die, validate: bool = False) -> die:
    '''
    Replaces every outcome of x with the distribution f(outcome), which should sum to 1.
    Ex: reroll(lambda v: d(6) if v == 1 else die.constant(v), d(6)) rerolls 1s once.
    validate: If True, raise ValueError when some f(outcome) doesn't sum to 1.
    '''
    return x.reroll(f, validate)

def normalize(x: die) -> die:
    '''Rescales x in place so its weights sum to 1. Returns x.'''
    return x.normalize()

def get(x: die, outcome: Any) -> float|None:
    '''Returns the weight of outcome in x, or None if x has no record of it.'''
    return x.get(outcome)

def set_weight(x: die, outcome: Any, weight: float) -> die:
    '''Sets the weight of outcome in x, in place. Returns x.'''
    return x.set(outcome, weight)

def sum_outcomes(total, outcome):
    '''Accumulator for pool(), adds up the outcomes.'''
    return total + outcome

def count_at_least(threshold) -> Callable[[int, Any], int]:
    '''
    Returns an accumulator for pool() that counts outcomes of at least threshold.
    Start it from 0.
    '''
    def count(successes: int, outcome) -> int:
        if outcome >= threshold:
            return successes + 1
        return successes
    count.__name__ = f'count_at_least({threshold})'
    return count

def keep_highest(n: int) -> Callable[[list, Any], list]:
    '''
    Returns an accumulator for pool() that keeps the n highest outcomes as a sorted list.
    Start it from []. Only the kept dice are remembered, so big pools stay cheap.
    Ex: interpret(sum, pool(keep_highest(4), [], nd(8, 6))) is 8d6 keep highest 4.
    '''
    check_count(n, 'Number of dice kept', 0)
    def keep(kept: list, outcome) -> list:
        kept.append(outcome)
        kept.sort()
        del kept[:max(len(kept) - n, 0)]
        return kept
    keep.__name__ = f'keep_highest({n})'
    return keep

def keep_lowest(n: int) -> Callable[[list, Any], list]:
    '''Variant of keep_highest, self-explanatory. Start it from [].'''
    check_count(n, 'Number of dice kept', 0)
    def keep(kept: list, outcome) -> list:
        kept.append(outcome)
        kept.sort()
        del kept[n:]
        return kept
    keep.__name__ = f'keep_lowest({n})'
    return keep

def opposed(attacker, defender) -> int:
    '''
    Combiner for pair(), 1 if attacker beats defender, 0 otherwise (ties go to the defender).
    Ex: pair(opposed, d(20) + 3, d(20) + 5)
    '''
    return 1 if attacker > defender else 0

def highest(x: die, n: int = 2) -> die:
    '''
    Returns the distribution of the greatest of n independent samples from x.
    x: A die class object.
    n: A positive integer
    '''
    check_count(n, 'Number of samples', 1)
    out = pool(_max_of, None, [x]*n)
    out.name = f'highest({x}, {n})' if n != 2 else f'adv({x})'
    return out

def lowest(x: die, n: int = 2) -> die:
    '''Variant of highest, the least of n samples from x.'''
    check_count(n, 'Number of samples', 1)
    out = pool(_min_of, None, [x]*n)
    out.name = f'lowest({x}, {n})' if n != 2 else f'dis({x})'
    return out

def adv(x: die) -> die:
    '''Returns the distribution of sampling twice from x and keeping the greater sample.'''
    return highest(x, 2)

def dis(x: die) -> die:
    '''Returns the distribution of sampling twice from x and keeping the lower sample.'''
    return lowest(x, 2)

advantage = adv
disadv = dis
disadvantage = dis

def _max_of(best, outcome):
    return outcome if best is None else max(best, outcome)

def _min_of(worst, outcome):
    return outcome if worst is None else min(worst, outcome)
