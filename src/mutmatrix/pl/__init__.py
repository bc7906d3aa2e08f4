"""Plotting functions for mutmatrix."""

from .spectrum import plot_spectrum, plot_96_profile

__all__ = [
    'plot_spectrum',
    'plot_96_profile'
]
