"""HTTP interface of the portfolio bounded context."""
