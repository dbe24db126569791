"""
CAPEX Kernel

Pure core of the CAPEX proposal forms:
- Milestone -> activity -> year-line structure model
- Budget-tier and fiscal-year derivation
- Full-form validation
- Gantt projection of the structure
- Typed exceptions and structured logging
"""

__version__ = "0.1.0"
