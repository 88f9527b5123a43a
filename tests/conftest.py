import os

# dice.py imports matplotlib.pyplot on import; keep it off any display
os.environ.setdefault('MPLBACKEND', 'Agg')
