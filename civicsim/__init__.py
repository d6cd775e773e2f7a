"""civicsim: deterministic cycle-simulation kernel for a simulated city."""
