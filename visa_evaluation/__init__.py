"""
Visa Evaluation Service

Deterministic decision engine for immigration-visa applications.
"""
