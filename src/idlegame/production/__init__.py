"""Idle production: rates, sessions and accrual claims."""
