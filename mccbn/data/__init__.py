"""
Synthetic data generation and benchmarking.
"""
