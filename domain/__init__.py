"""Pure domain model of the sales aggregate: no I/O, no frameworks."""
