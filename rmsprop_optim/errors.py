"""Exceptions raised by the RMSProp update step."""


class InvalidConfiguration(ValueError):
    """Hyperparameters that cannot be used together (e.g. Nesterov without momentum)."""


class DimensionMismatch(ValueError):
    """Parameter, gradient, learning-rate or buffer shapes disagree."""
