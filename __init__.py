"""
Orthostatic Test Analyzer

Reads the FIT activity of an orthostatic test, allocates the recorded RR
intervals to the test laps and computes per-phase average HR and RMSSD.
"""

__version__ = "0.1.0"
