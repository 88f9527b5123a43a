#!/usr/bin/env python3
'''
Exact distributions of dice pools, with a small interactive front end.
This module can be run by executing the main() function, which activates REPL
functionality. It also provides an API of sorts, in the form of the "handle"
function, which allows you to do things like
    d, f = handle('pool(count_at_least(5), 0, nd(12, 6))')
    f.show()
to get a nice plot.
'''
from numbers import Real
from typing import Any, Callable
from die import die, PRINT_POOL_SIZES
from dice_functions import (d, nd, ndm, pair, pool, interpret, reroll, normalize,
    get, set_weight, sum_outcomes, count_at_least, keep_highest, keep_lowest, opposed,
    highest, lowest, adv, advantage, dis, disadv, disadvantage)
from stats import mean, average, median, var, sd, frequencies, sample, table
import dice_strings
import numpy as np
import sys
# Importing matplotlib.pyplot takes a while, and plt isn't needed until the user has
# typed something in and pressed enter, so we import it on another thread.
plt = None
import threading
import re
import traceback
import ast

plt_initialized = False
def import_plt():
    global plt
    global plt_initialized
    import matplotlib.pyplot as plt
    plt_initialized = True
import_thread = threading.Thread(target=import_plt, name='import matplotlib')
import_thread.start()

__all__ = ['main', 'handle', 'plot', 'process_input', 'describe', 'EXAMPLES', 'die',
           'd', 'nd', 'ndm', 'pair', 'pool', 'interpret', 'reroll', 'normalize', 'get',
           'set_weight', 'sum_outcomes', 'count_at_least', 'keep_highest', 'keep_lowest',
           'opposed', 'highest', 'lowest', 'adv', 'advantage', 'dis', 'disadv',
           'disadvantage', 'mean', 'average', 'median', 'var', 'sd', 'frequencies',
           'sample', 'table', 'PRINT_POOL_SIZES']

def _sum_example() -> die:
    out = pool(sum_outcomes, 0, nd(3, 4) + nd(2, 6) + nd(1, 8))
    out.name = '3d4+2d6+1d8'
    return out

def _successes_example() -> die:
    out = pool(count_at_least(5), 0, nd(12, 6))
    out.name = 'successes (5+) on 12d6'
    return out

def _highest_example() -> die:
    out = interpret(sum, pool(keep_highest(4), [], nd(8, 6)))
    out.name = '8d6 keep highest 4'
    return out

def _opposed_example() -> die:
    out = pair(opposed, d(20) + 3, d(20) + 5)
    out.name = '[1d20+3 beats 1d20+5]'
    return out

EXAMPLES: dict[str, Callable[[], die]] = {
    'sum': _sum_example,
    'successes': _successes_example,
    'highest': _highest_example,
    'opposed': _opposed_example,
}

# Everything an expression is allowed to call, and nothing else.
safe_functions: dict[str, Any] = {
    'd': d, 'nd': nd, 'ndm': ndm,
    'pair': pair, 'pool': pool, 'interpret': interpret, 'reroll': reroll,
    'normalize': normalize, 'constant': die.constant,
    'sum_outcomes': sum_outcomes, 'count_at_least': count_at_least,
    'keep_highest': keep_highest, 'keep_lowest': keep_lowest, 'opposed': opposed,
    'highest': highest, 'lowest': lowest, 'adv': adv, 'advantage': advantage,
    'dis': dis, 'disadv': disadv, 'disadvantage': disadvantage,
    'mean': mean, 'average': average, 'median': median, 'var': var, 'sd': sd,
    'help': help, 'print': print,
    'sum': sum, 'max': max, 'min': min, 'len': len, 'sorted': sorted, 'abs': abs,
    'tuple': tuple, 'list': list,
}

safe_nodes = set((
    ast.Expression,
    ast.Constant,
    ast.Call,
    ast.keyword,
    ast.List,
    ast.Tuple,
    ast.Name,
    ast.Load,
    ast.Lambda,
    ast.arguments,
    ast.arg,
    ast.IfExp,
    ast.BoolOp, ast.And, ast.Or,
    ast.BinOp,
    ast.UnaryOp,
    ast.Add, ast.UAdd, ast.Sub, ast.USub, ast.Not,
    ast.Mult, ast.MatMult,
    ast.Div, ast.FloorDiv,
    ast.Mod,
    ast.Pow,
    ast.Compare,
    ast.Eq, ast.NotEq,
    ast.Lt, ast.LtE,
    ast.Gt, ast.GtE,
))

def whitelist_eval(string: str) -> Any:
    '''
    Checks that the AST of string only contains nodes and function calls
    included in the whitelist. If so, evaluates string, otherwise raises
    an exception.
    '''
    tree = ast.parse(string, mode='eval')
    for node in ast.walk(tree):
        if type(node) not in safe_nodes:
            raise ValueError(f'{type(node).__name__} is not a whitelisted operation')
        if isinstance(node, ast.Call):
            if not isinstance(node.func, ast.Name):
                raise ValueError(f'{type(node.func).__name__} is not a whitelisted call type')
            if node.func.id not in safe_functions:
                raise ValueError(f'{node.func.id} is not a whitelisted function')
    # lambdas look names up in globals, so the whitelist has to live there
    namespace = {'__builtins__': {}, **safe_functions}
    return eval(compile(tree, filename='<whitelisted-ast>', mode='eval'), namespace)

def process_input(text: str) -> Any:
    '''
    Internal function. Turns the name of an example into its distribution, otherwise
    rewrites dice notation like 3d6 into ndm(3, 6) and evaluates the result.
    '''
    text = text.strip()
    if text in EXAMPLES:
        return EXAMPLES[text]()
    new_text = re.sub(r'\^', '**', text)
    new_text = re.sub(r'(?<![\w.])([1-9][0-9]*)d([1-9][0-9]*)', r'ndm(\1, \2)', new_text)
    try:
        x = whitelist_eval(new_text)
    except Exception as e:
        e.args = (f'{e.args[0] if e.args else e}\nnew_text: {new_text}',)
        raise
    if isinstance(x, die) and x.name is None:
        x.name = text
    return x

def _is_numeric(x: die) -> bool:
    return len(x) > 0 and all(isinstance(o, Real) for o in x.outcomes())

def describe(x: die) -> str:
    '''
    Returns a text summary of a distribution: mean, standard deviation and median when
    the outcomes are numbers, a random sample, and the probability table.
    '''
    lines = []
    if _is_numeric(x):
        lines.append(f'Mean: {mean(x):.6g} standard deviation: {sd(x):.6g} '
                     f'median: {median(x):g}')
    lines.append(f'Random sample from distribution: {sample(x)}')
    lines.append(table(x))
    return '\n'.join(lines)

def plot(x: die, name: str) -> 'matplotlib.figure.Figure': # type: ignore
    '''
    Internal function. Plots a distribution.
    Numeric outcomes get a stem plot with the cumulative distribution on a second axis,
    anything else gets a bar per outcome.
    x: A die class object
    name: A name for the plot.
    '''
    global plt_initialized
    # If matplotlib isn't imported yet, we wait
    if not plt_initialized:
        import_thread.join()
        plt_initialized = True
    assert plt is not None
    fig, ax = plt.subplots()
    if fig.canvas.manager is not None:
        fig.canvas.manager.set_window_title(name)
    plt.title('Distribution of ' + name)
    normalized = x.copy().normalize()
    if not _is_numeric(normalized):
        labels = [str(o) for o in normalized.outcomes()]
        ax.bar(range(len(labels)), normalized.weights(), color='tab:blue')
        ax.set_xticks(range(len(labels)), labels, rotation=45, ha='right')
        fig.tight_layout()
        return fig
    entries = sorted(normalized.entries(), key=lambda e: e[0])
    xs = [outcome for outcome, _ in entries]
    y = np.array([weight for _, weight in entries])
    # For larger distributions, we plot differently to reduce clutter.
    threshold_small_heads = 100
    threshold_no_heads = 1000
    if len(y) < threshold_small_heads:
        ax.stem(xs, y, label='Probability', basefmt='')
    elif len(y) < threshold_no_heads:
        ax.stem(xs, y, label='Probability', markerfmt='.', basefmt='')
    else:
        ax.stem(xs, y, label='Probability', markerfmt='', basefmt='')
    ax.tick_params(axis='y', labelcolor='tab:blue')
    ax2 = ax.twinx()
    ax2.set_ylim(-.05, 1.05)
    ax2.plot(xs, np.cumsum(y), 'tab:red', label='Cumulative')
    ax2.tick_params(axis='y', labelcolor='tab:red')
    fig.legend()
    return fig

def handle(text: str) -> 'tuple[die|None, matplotlib.figure.Figure|None]': # type: ignore
    '''
    text: An expression involving dice, such as "3d4+7", or the name of an example.
    Returns (d, f) where d is a die class object representing the distribution
    of the input expression, and f is a matplotlib figure instance. If the
    expression doesn't give a die class object, this returns (None, None).
    Ex:
    d, f = handle('opposed')
    f.savefig('opposed.png')
    '''
    x = process_input(text)
    if isinstance(x, die):
        return x, plot(x, text)
    return None, None

def _show(text: str, show_plot: bool):
    '''Internal function, evaluates text and prints (and maybe plots) the result.'''
    x = process_input(text)
    if isinstance(x, die):
        print(describe(x))
        if show_plot and len(x) > 0:
            fig = plot(x, str(x))
            print('Plotting in other window. That window must be closed to continue.')
            fig.show()
            assert plt is not None
            plt.show()
    elif x is None:
        print('Nothing to plot.')
    else:
        print('Nothing to plot.\nNumeric result:', x)

def main(argv: list[str]|None = None):
    '''
    With arguments, evaluates them as one expression (or example name), prints a summary
    and plots it; --no-plot skips the plot and --sizes prints pool sizes as they're built.
    Without arguments, starts an interactive session.
    '''
    args = sys.argv[1:] if argv is None else list(argv)
    show_plot = '--no-plot' not in args
    if '--sizes' in args:
        PRINT_POOL_SIZES[0] = True
    args = [arg for arg in args if arg not in ('--no-plot', '--sizes')]
    if args:
        text = ' '.join(args)
        try:
            _show(text, show_plot)
        except NameError:
            print('Not a valid input.')
            traceback.print_exc()
            return 1
        except Exception:
            print('Error encountered, aborting input.')
            traceback.print_exc()
            return 1
        return 0
    print('Getting started: Try typing 2d6+3 or successes.')
    while True:
        print('\nEnter q to quit. Enter help for options.')
        try:
            text = input('>>').strip()
        except EOFError:
            break
        text = re.sub(r'\s+', ' ', text)
        if text.lower() in ('q', 'quit', 'exit'):
            break
        if text.lower() in ('?', 'h', 'help'):
            print(dice_strings.help_string)
            continue
        if text.lower() in ('advanced', 'help advanced', 'h advanced', '? advanced'):
            print(dice_strings.help_advanced)
            continue
        if text.lower() in ('examples', 'help examples', 'h examples', '? examples'):
            print(dice_strings.examples_help)
            continue
        if len(text) > 0:
            try:
                _show(text, show_plot)
            except NameError:
                print('Not a valid input.')
                traceback.print_exc()
            except Exception:
                print('Error encountered, aborting input.')
                traceback.print_exc()
    return 0

if __name__ == '__main__':
    print('\33]0;Dice Pools\a', end='')
    sys.stdout.flush()
    sys.exit(main())
