"""Waiting list allocation and booking windows for sold-out trips."""
