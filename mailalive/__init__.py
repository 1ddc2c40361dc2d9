"""End-to-end mail delivery probe exposing delivery delay as Prometheus metrics."""
