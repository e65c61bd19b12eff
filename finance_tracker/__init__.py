"""Command-line entry points for the finance tracker."""
