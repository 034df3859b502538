"""
gym_kernel -- transactional consistency and compensation core for a gym's
operational records (clients, training plans, contracts, progress entries,
financial movements).

Entry points:
    gym_kernel.bootstrap.bootstrap()  -- wire services from settings
    python -m gym_kernel              -- maintenance CLI
"""

__version__ = "0.1.0"
