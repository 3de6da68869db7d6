"""Return derivation, statistics helpers and terminal-distribution queries."""
