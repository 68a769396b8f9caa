"""hidehelper command-line interface."""
