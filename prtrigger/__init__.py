"""Pull-request build trigger: decides, parameterizes and dispatches PR builds."""

__version__ = "0.1.0"
