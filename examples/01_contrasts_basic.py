"""
Basic example: group × time means and contrasts from coefficient draws.

The draws stand in for the output of any model fitted with the
treatment-coded design

    response ~ time + group + group:time

with control / t1 as the reference cell. Here they are faked as
independent normal draws around known coefficients:

    intercept                        20.0
    time[t2]                          1.0
    time[t3]                          1.5
    group[intervention]               0.0
    group[intervention]:time[t2]      2.0
    group[intervention]:time[t3]      4.5
"""

import numpy as np

from longitrial import TRIAL_DESIGN, PosteriorContrastSummarizer

RNG = np.random.default_rng(42)
N = 4_000
COEFS = np.array([20.0, 1.0, 1.5, 0.0, 2.0, 4.5])

draws = COEFS + 0.4 * RNG.normal(size=(N, len(COEFS)))

print(TRIAL_DESIGN)

summarizer = PosteriorContrastSummarizer(hdi_prob=0.95)
print(summarizer.means(draws).summary())
print(summarizer.contrasts(draws).summary())

print(summarizer.contrasts(draws).to_frame())
