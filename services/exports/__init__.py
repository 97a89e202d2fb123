"""Presentation: turns search hits and market data into JSON-ready payloads.

- payloads.py: price/volume formatting and per-tool response shapes
"""
