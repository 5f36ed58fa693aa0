"""
Domain layer for the waste collection system.
Contains business logic, state machines and rule chains
separated from data persistence concerns.
"""
