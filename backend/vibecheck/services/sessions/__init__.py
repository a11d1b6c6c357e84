"""Session domain services: scoring, registry and phase timers.

Socket handlers and HTTP routes go through these services, keeping
transport concerns separated from core game mechanics.
"""
