'''Internal math functions'''
from numbers import Integral, Real
from typing import Any, Callable, Iterable, Iterator, Self
import copy
import dataclasses
import math
import operator
import warnings
import numpy as np

# Set PRINT_POOL_SIZES[0] = True to have pool() report how many distinct
# accumulator values survive each fold step.
PRINT_POOL_SIZES = [False]
# Absolute tolerance used whenever weights are checked against a total of 1.
TOLERANCE = 1e-9

# Marks outcomes that have no structural key and live in die._loose.
_LOOSE = object()

def outcome_key(outcome: Any) -> Any:
    '''
    Internal function, returns a hashable stand-in for outcome such that two outcomes
    get equal keys exactly when they are structurally equal.
    Containers are tagged with their kind and projected element by element, so
    [1, 2] and [1, 2] share a key, while [1, 2] and (1, 2) don't (Python says they
    aren't equal either). Scalars are their own key.
    Raises TypeError if outcome (or something inside it) has no key.
    '''
    if isinstance(outcome, (str, bytes, Real)) or outcome is None:
        return outcome
    if isinstance(outcome, list):
        return ('[]', tuple(outcome_key(x) for x in outcome))
    if isinstance(outcome, tuple):
        return ('()', tuple(outcome_key(x) for x in outcome))
    if isinstance(outcome, dict):
        return ('{}', frozenset((outcome_key(k), outcome_key(v)) for k, v in outcome.items()))
    if isinstance(outcome, (set, frozenset)):
        return ('set', frozenset(outcome_key(x) for x in outcome))
    if isinstance(outcome, np.ndarray):
        return ('ndarray', outcome.shape, tuple(outcome_key(x) for x in outcome.ravel().tolist()))
    if (dataclasses.is_dataclass(outcome) and not isinstance(outcome, type)
            and outcome.__dataclass_params__.eq): # type: ignore
        return ('dataclass', type(outcome), tuple(
            outcome_key(getattr(outcome, f.name)) for f in dataclasses.fields(outcome) if f.compare))
    hash(outcome)
    return outcome

class die:
    '''
    A class for managing discrete distributions over arbitrary outcomes. Outcomes can be
    anything that compares with ==: numbers, strings, tuples, lists, dicts, dataclasses...
    Two outcomes that are equal in content are the same outcome, even when they were built
    separately, so the map never holds two records for [1, 2].
    Weights don't have to sum to 1; normalize() makes them.

    Apart from normalize(), set() and accumulate(), everything works in a functional
    manner: combining dice always gives a new instance and leaves the inputs alone.

    Initialization parameters:
    outcomes (optional): A mapping outcome -> weight, an iterable of (outcome, weight)
        pairs, or another die. Structurally equal outcomes are merged.
        Weights must be non-negative numbers.
    name (optional): A string, a name for this distribution, used when printing and plotting.
    '''
    def __init__(self, outcomes: 'dict|Iterable[tuple[Any, float]]|die|None' = None,
                 name: str|None = None):
        # key -> [outcome, weight]; the outcome is the first one seen for that key
        self._records: dict[Any, list] = {}
        # [outcome, weight] records for outcomes that have no structural key
        self._loose: list[list] = []
        self.name = name
        if outcomes is None:
            return
        if isinstance(outcomes, die):
            outcomes = outcomes.entries()
        elif hasattr(outcomes, 'items'):
            outcomes = outcomes.items() # type: ignore
        for outcome, weight in outcomes: # type: ignore
            if not isinstance(weight, Real):
                raise TypeError(f'Weight of {outcome!r} must be a number, got {weight!r}')
            if math.isnan(weight):
                raise ValueError(f'Weight of {outcome!r} is NaN')
            if weight < 0:
                raise ValueError(f'Weight of {outcome!r} must be non-negative, got {weight}')
            self.accumulate(outcome, float(weight))

    @classmethod
    def constant(cls, value: Any) -> 'die':
        '''Returns the distribution that's always value.'''
        return cls([(value, 1.0)], str(value))

    def _lookup(self, outcome: Any) -> tuple[Any, list|None]:
        '''
        Internal function, returns (key, record) for outcome. record is None if there's no
        structurally equal outcome yet. key is _LOOSE for outcomes without a structural key,
        which are found by comparing against every loose record with ==.
        '''
        try:
            key = outcome_key(outcome)
        except TypeError:
            for record in self._loose:
                if record[0] == outcome:
                    return _LOOSE, record
            return _LOOSE, None
        return key, self._records.get(key)

    def get(self, outcome: Any) -> float|None:
        '''
        Returns the weight recorded for outcome, or None if outcome was never recorded.
        A recorded weight of 0.0 is returned as 0.0.
        '''
        _, record = self._lookup(outcome)
        return None if record is None else record[1]

    def set(self, outcome: Any, weight: float) -> Self:
        '''
        Sets the weight of outcome, overwriting the record of a structurally equal
        outcome if there is one. Mutates self, returns self.
        '''
        key, record = self._lookup(outcome)
        if record is not None:
            record[1] = weight
        elif key is _LOOSE:
            self._loose.append([outcome, weight])
        else:
            self._records[key] = [outcome, weight]
        return self

    def accumulate(self, outcome: Any, weight: float) -> Self:
        '''
        Adds weight to the record of outcome, creating the record at 0 first if needed.
        Mutates self, returns self.
        '''
        key, record = self._lookup(outcome)
        if record is not None:
            record[1] += weight
        elif key is _LOOSE:
            self._loose.append([outcome, weight])
        else:
            self._records[key] = [outcome, weight]
        return self

    def _all_records(self) -> Iterator[list]:
        yield from self._records.values()
        yield from self._loose

    def entries(self) -> list[tuple[Any, float]]:
        '''Returns a list of (outcome, weight) pairs.'''
        return [(outcome, weight) for outcome, weight in self._all_records()]

    def outcomes(self) -> list:
        return [record[0] for record in self._all_records()]

    def weights(self) -> np.ndarray:
        return np.array([record[1] for record in self._all_records()], dtype=float)

    def total(self) -> float:
        '''Returns the sum of all weights.'''
        return float(np.sum(self.weights()))

    def is_normalized(self) -> bool:
        return math.isclose(self.total(), 1.0, rel_tol=0.0, abs_tol=TOLERANCE)

    def copy(self) -> 'die':
        '''Returns a new die with the same records. Outcomes themselves are shared.'''
        out = die(name=self.name)
        out._records = {key: list(record) for key, record in self._records.items()}
        out._loose = [list(record) for record in self._loose]
        return out

    def normalize(self) -> Self:
        '''
        Rescales the weights in place so that they sum to 1, returns self.
        This is the only operation that changes an existing distribution.
        Raises ZeroDivisionError if the total weight is 0 (this includes empty dice).
        '''
        total = self.total()
        if total == 0:
            raise ZeroDivisionError('Cannot normalize a distribution with total weight 0')
        if not math.isfinite(total):
            raise ValueError(f'Cannot normalize a distribution with total weight {total}')
        for record in self._all_records():
            record[1] /= total
        return self

    def interpret(self, f: Callable[[Any], Any]) -> 'die':
        '''
        Gives the distribution of applying f to a sample from self. Outcomes that f maps
        to structurally equal values are merged, so the total weight is unchanged.
        f: A function from outcomes to new outcomes.
        Returns a new die class object.
        '''
        out = die()
        for outcome, weight in self.entries():
            out.accumulate(f(outcome), weight)
        return out

    def reroll(self, f: Callable[[Any], 'die'], validate: bool = False) -> 'die':
        '''
        Gives the distribution of sampling from self, then sampling again from f(sample).
        Each branch f(outcome) is weighted by the probability of outcome, and the
        branches are flattened into one distribution, merging equal outcomes.
        f: A function from outcomes to die class objects. Every f(outcome) should sum to 1,
           otherwise that branch ends up scaled. This warns by default.
        validate: If True, a branch that doesn't sum to 1 raises ValueError instead.
        Returns a new die class object.
        '''
        out = die()
        off = 0
        for outcome, weight in self.entries():
            branch = f(outcome)
            if not isinstance(branch, die):
                raise TypeError(f'reroll function must return a die, got {type(branch).__name__} '
                                f'for {outcome!r}')
            if not branch.is_normalized():
                if validate:
                    raise ValueError(f'reroll of {outcome!r} has total weight {branch.total()}, '
                                     'expected 1')
                off += 1
            for new_outcome, new_weight in branch.entries():
                out.accumulate(new_outcome, new_weight * weight)
        if off:
            warnings.warn(f'{off} reroll branch(es) did not sum to 1, the result is scaled',
                          RuntimeWarning, stacklevel=2)
        return out

    def _equals(self, other: 'die', tol: float = TOLERANCE) -> bool:
        '''
        Returns True if self and other have the same outcomes with the same weights
        (within tol), False otherwise. Record order doesn't matter.
        '''
        if self is other:
            return True
        if len(self) != len(other):
            return False
        for outcome, weight in self.entries():
            other_weight = other.get(outcome)
            if other_weight is None or not np.isclose(weight, other_weight, rtol=0.0, atol=tol):
                return False
        return True

    def __len__(self) -> int:
        return len(self._records) + len(self._loose)

    def __iter__(self) -> Iterator:
        return iter(self.outcomes())

    def __contains__(self, outcome: Any) -> bool:
        return self._lookup(outcome)[1] is not None

    def __getitem__(self, outcome: Any) -> float:
        '''Returns the weight of outcome, 0.0 if it isn't recorded. Use get() to tell them apart.'''
        weight = self.get(outcome)
        return 0.0 if weight is None else weight

    def __repr__(self) -> str:
        return f'die({self.entries()!r}, {self.name!r})'

    def __str__(self) -> str:
        if self.name is not None:
            return self.name
        return 'die(' + ', '.join(f'{o!r}: {w:.4g}' for o, w in self.entries()) + ')'

    def _arithmetic(self, other: Any, op: Callable, symbol: str, reflected: bool = False):
        '''Internal function, implements the arithmetic operators through pair/interpret'''
        if isinstance(other, die):
            left, right = (other, self) if reflected else (self, other)
            out = pair(op, left, right)
        elif isinstance(other, Real):
            if reflected:
                out = self.interpret(lambda x: op(other, x))
            else:
                out = self.interpret(lambda x: op(x, other))
        else:
            return NotImplemented
        if self.name is not None and getattr(other, 'name', '') is not None:
            out.name = f'{other}{symbol}{self}' if reflected else f'{self}{symbol}{other}'
        return out

    def __add__(self, other: 'float|die') -> 'die':
        '''Gives the distribution of the sum of self and other (a number or die).'''
        return self._arithmetic(other, operator.add, '+')

    def __radd__(self, other: 'float|die') -> 'die':
        '''Variant of __add__, self-explanatory'''
        return self._arithmetic(other, operator.add, '+', True)

    def __sub__(self, other: 'float|die') -> 'die':
        '''Variant of __add__, self-explanatory'''
        return self._arithmetic(other, operator.sub, '-')

    def __rsub__(self, other: 'float|die') -> 'die':
        '''Variant of __add__, self-explanatory'''
        return self._arithmetic(other, operator.sub, '-', True)

    def __mul__(self, other: 'float|die') -> 'die':
        '''
        Gives the distribution of the product of self and other.
        Note that 3*d(6) is a single d6 tripled, not 3d6. Use 3 @ d(6) for that.
        '''
        return self._arithmetic(other, operator.mul, '*')

    def __rmul__(self, other: 'float|die') -> 'die':
        '''Variant of __mul__, self-explanatory.'''
        return self._arithmetic(other, operator.mul, '*', True)

    def __neg__(self) -> 'die':
        '''Returns the distribution of the negative of self.'''
        out = self.interpret(operator.neg)
        if self.name is not None:
            out.name = f'-{self}'
        return out

    def __pos__(self) -> Self:
        return self

    def __matmul__(self, other: 'int|die') -> 'die':
        '''
        Gives the distribution of sampling from self, then summing up that many samples
        from other. Note that 2 @ d(4) is 2d4, not 2*d(4).
        Returns a new die class object.
        '''
        if isinstance(other, die):
            out = self.reroll(lambda n: n @ other)
            out.name = f'{self} @ {other}'
            return out
        return NotImplemented

    def __rmatmul__(self, other: int) -> 'die':
        '''Variant of __matmul__, n @ d is the sum of n samples from d.'''
        if isinstance(other, bool) or not isinstance(other, Integral):
            return NotImplemented
        if other < 0:
            return -(-other @ self)
        out = pool(operator.add, 0, [self]*other)
        out.name = f'{other}@{self}'
        return out

def uniform(sides: int) -> die:
    '''
    Internal function, returns the distribution of a fair die numbered 1 to sides.
    sides: A positive integer
    Returns a die class object.
    '''
    check_count(sides, 'Number of sides', 1)
    return die([(side, 1/sides) for side in range(1, sides+1)], f'1d{sides}')

def check_count(value: int, what: str, minimum: int):
    '''Internal function, rejects non-integers and integers below minimum.'''
    if isinstance(value, bool) or not isinstance(value, Integral):
        raise TypeError(f'{what} must be an integer, got {value!r}')
    if value < minimum:
        raise ValueError(f'{what} must be at least {minimum}, got {value}')

def pair(combine: Callable[[Any, Any], Any], x: die, y: die) -> die:
    '''
    Returns the distribution of combine(a, b), where a is a sample from x and b is a
    sample from y. Results that are structurally equal are merged.
    The total weight of the result is x.total() * y.total().
    combine: A function of two outcomes. It doesn't have to be commutative.
    x, y: die class objects
    Returns a new die class object.
    '''
    out = die()
    y_entries = y.entries()
    for a, a_weight in x.entries():
        for b, b_weight in y_entries:
            out.accumulate(combine(a, b), a_weight * b_weight)
    return out

def pool(accumulate: Callable[[Any, Any], Any], initial: Any, dice: Iterable[die]) -> die:
    '''
    Returns the distribution of folding accumulate over one sample from each of dice,
    left to right, starting from initial.
    accumulate: A function (accumulator, outcome) -> new accumulator. It always gets its
        own deep copy of the accumulator, so it's free to modify it in place and return it.
    initial: The starting accumulator value.
    dice: An iterable of die class objects, in the order they're folded in.
    Returns a new die class object. With no dice, that's just initial with weight 1.
    '''
    # Equal accumulator values are merged after every die, not just at the end. When
    # accumulate forgets detail (a running sum, a count, the top k) the running
    # distribution stays as small as the number of distinct accumulator values.
    running = die([(initial, 1.0)])
    for step, next_die in enumerate(dice, 1):
        merged = die()
        next_entries = next_die.entries()
        for partial, partial_weight in running.entries():
            for outcome, weight in next_entries:
                merged.accumulate(accumulate(copy.deepcopy(partial), outcome),
                                  partial_weight * weight)
        running = merged
        if PRINT_POOL_SIZES[0]:
            print(f'pool step {step}: {len(running)} distinct values')
    return running
