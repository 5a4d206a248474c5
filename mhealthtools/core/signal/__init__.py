"""
Signal Feature Functions.

Extractors take one vector and return one row of named scalars.
"""

from . import statistics  # time_domain_summary, coef_var, mean_tkeo, fatigue
from . import spectral    # get_spectrum, get_ewt_spectrum, frequency_domain_summary
from . import tapping     # tap events, intertap / tapdrift summaries

from .statistics import time_domain_summary
from .spectral import frequency_domain_summary, frequency_domain_energy

__all__ = [
    'statistics',
    'spectral',
    'tapping',
    'time_domain_summary',
    'frequency_domain_summary',
    'frequency_domain_energy',
]
