"""Pure domain layer: value objects, DTOs, totals and the clock.  Zero I/O."""
