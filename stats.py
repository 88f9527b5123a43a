'''Summary statistics of finished distributions'''
from dataclasses import dataclass, field
from typing import Any
import numpy as np
from die import die, outcome_key, TOLERANCE

def _normalized(d: die) -> die:
    '''Internal function, normalizes a copy so the caller's distribution isn't touched.'''
    return d.copy().normalize()

def mean(d: die) -> float:
    '''Returns the mean of a die class object with numeric outcomes.'''
    normalized = _normalized(d)
    x = np.array(normalized.outcomes(), dtype=float)
    out = float(np.sum(x * normalized.weights()))
    if abs(out) < 2**(-53): # values below this are likely rounding artifacts
        out = 0.0 # so it's safer to just round to 0
    return out

average = mean

def var(d: die) -> float:
    '''Returns the variance of a die class object with numeric outcomes.'''
    normalized = _normalized(d)
    x = np.array(normalized.outcomes(), dtype=float)
    mu = float(np.sum(x * normalized.weights()))
    return max(float(np.sum(normalized.weights() * (x-mu)**2)), 0.0)

def sd(d: die) -> float:
    '''Returns the standard deviation of a die class object.'''
    return float(np.sqrt(var(d)))

def median(d: die) -> float:
    '''
    Returns the median of a die class object with numeric outcomes: the smallest outcome
    where the cumulative probability passes 1/2. If the cumulative probability lands
    exactly on 1/2 at some outcome, returns the average of that outcome and the next one,
    so the median of d(6) is 3.5.
    Outcomes with zero weight are ignored.
    '''
    if len(d) == 0:
        raise ValueError('Cannot take the median of an empty distribution')
    normalized = _normalized(d)
    ordered = sorted((e for e in normalized.entries() if e[1] > 0), key=lambda e: e[0])
    cdf = np.cumsum([weight for _, weight in ordered])
    for i, cumulative in enumerate(cdf):
        if i + 1 < len(ordered) and np.isclose(cumulative, 0.5, rtol=0.0, atol=TOLERANCE):
            return (ordered[i][0] + ordered[i+1][0]) / 2
        if cumulative > 0.5:
            return ordered[i][0]
    return ordered[-1][0]

@dataclass(frozen=True)
class OutcomeKey:
    '''
    Stands in for an outcome that can't be a dict key in frequencies(). Equal outcomes
    get equal keys; outcome holds the original value and takes no part in comparisons.
    '''
    key: Any
    outcome: Any = field(default=None, compare=False)

def frequencies(d: die) -> dict[Any, float]:
    '''
    Returns a dict outcome -> probability. Outcomes that can't be dict keys, such as
    lists, are wrapped in an OutcomeKey holding their structural key (see
    die.outcome_key), so frequencies(x)[OutcomeKey(outcome_key([1, 2]))] works.
    Outcomes with no structural key at all are keyed by their position in x.entries().
    '''
    out = {}
    for position, (outcome, weight) in enumerate(_normalized(d).entries()):
        try:
            hash(outcome)
        except TypeError:
            try:
                outcome = OutcomeKey(outcome_key(outcome), outcome)
            except TypeError:
                outcome = OutcomeKey(('position', position), outcome)
        out[outcome] = weight
    return out

def sample(d: die, rng: np.random.Generator|None = None) -> Any:
    '''
    Returns one random outcome of d, for display purposes.
    rng (optional): A numpy Generator, a fresh one is used if omitted.
    '''
    if rng is None:
        rng = np.random.default_rng()
    normalized = _normalized(d)
    outcomes = normalized.outcomes()
    u = rng.random()
    index = int(np.searchsorted(np.cumsum(normalized.weights()), u, side='right'))
    return outcomes[min(index, len(outcomes)-1)]

def _sort_key(entry: tuple[Any, float]):
    return entry[0]

def table(d: die) -> str:
    '''
    Returns a text table of outcomes and their probabilities, sorted by outcome when the
    outcomes can be sorted.
    '''
    entries = _normalized(d).entries()
    try:
        entries = sorted(entries, key=_sort_key)
    except TypeError:
        pass # mixed outcome types, keep insertion order
    width = max([len(str(outcome)) for outcome, _ in entries] + [len('outcome')]) + 2
    lines = [f"{'outcome':<{width}}probability"]
    lines += [f'{str(outcome):<{width}}{weight:.6g}' for outcome, weight in entries]
    return '\n'.join(lines)
