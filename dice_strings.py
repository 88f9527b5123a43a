help_string = '''
Available things:
 NdM:
   The sum of N dice with M sides each, eg 3d6, 2d20. d(20) is a single die.

 +, -, *, @ (, ):
   Does what you'd expect, eg 2d6-1d4+3, d(6)*3 (one die tripled, not 3d6).
   2 @ d(6) adds up 2 samples of d(6), and d(4) @ d(6) rolls 1d4 then adds up that many d6.

 adv, dis, highest, lowest:
   The better/worse of several samples, eg adv(d(20)), highest(3d6, 4).

 pool(rule, start, dice):
   Folds a pool of dice into one result with an aggregation rule.
   Ready-made rules: sum_outcomes (start from 0), count_at_least(n) (start from 0),
   keep_highest(n), keep_lowest(n) (start from []).
   Ex: pool(count_at_least(5), 0, nd(12, 6)) counts 5s and 6s on 12d6.
   Ex: interpret(sum, pool(keep_highest(3), [], nd(4, 6))) is 4d6 drop lowest.

 pair(combine, x, y), interpret(f, x), reroll(f, x):
   See "help advanced".

 Examples:
   Type the name of an example to see it: sum, successes, highest, opposed.'''

help_advanced = '''
Advanced functions:
 pair:
   Combines two dice with any function of two values.
   Syntax: pair(combine, die1, die2)
   Ex: pair(opposed, d(20)+3, d(20)+5) is 1 if the attacker beats the defender, else 0.
   Ex: pair(max, d(20), d(20)) is the same as adv(d(20)).

 interpret:
   Re-reads every outcome of a die through a function. Outcomes that end up equal
   are merged.
   Syntax: interpret(function, die)
   Ex: interpret(lambda x: x >= 4, d(6)) is True or False with probability 1/2 each.

 reroll:
   Replaces every outcome with a whole new distribution, weighted by the outcome's
   probability. The new distributions should add up to 1.
   Syntax: reroll(function, die)
   Ex: reroll(lambda x: d(6) if x == 1 else constant(x), d(6)) rerolls 1s once.

 mean, median, sd, var:
   Summary statistics, eg mean(3d6).

 help:
   If called as a function, help prints another function's Python documentation,
   eg help(pool). Only recommended for people familiar with Python.
   To be precise, terminal input other than "help x" goes through some regex
   processing and is then passed to Python's eval function, restricted to the
   functions listed here.'''

examples_help = '''
 sum:       3d4 + 2d6 + 1d8, folded as one pool with sum_outcomes.
 successes: How many of 12d6 roll 5 or higher.
 highest:   Sum of the highest 4 of 8d6.
 opposed:   Chance that d20+3 beats d20+5.'''
