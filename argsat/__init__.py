"""argsat — SAT-based abstract argumentation solver with dynamic sessions."""

__version__ = "0.1.0"
