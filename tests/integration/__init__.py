"""
Integration tests for stateful retry.

Exercise the executor end to end with a simulated redelivering broker and
concurrent handlers. No external services required.
"""
