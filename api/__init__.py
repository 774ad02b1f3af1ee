"""
API Module
HTTP surface of the solver
"""
