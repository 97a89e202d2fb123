"""Company catalog loading.

- loader.py: parses the company database CSV (ID, Symbol, Company Name)
- cse_companies.csv: bundled snapshot of CSE listings
"""
