"""Pure timing and statistics core: no I/O, no threads."""
