"""HTTP interface for the finance tracker."""
