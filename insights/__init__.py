"""Core domain logic for episode journaling insights.

This package contains the pattern engine and its domain models,
isolated from file formats and the command line for easy testing and reasoning.
"""
