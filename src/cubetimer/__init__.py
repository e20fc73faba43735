"""cubetimer: a hold-to-start solve timer and competition statistics engine."""

__version__ = "0.1.0"
