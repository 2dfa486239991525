"""
Switchboard Logic - token expressions, transition systems and the statemachine.
"""

from .grammar import AND, OR, Term, identifiers, parse
from .statemachine import Statemachine
from .transition import TransitionSystem

__all__ = [
    "parse",
    "identifiers",
    "Term",
    "AND",
    "OR",
    "TransitionSystem",
    "Statemachine",
]
