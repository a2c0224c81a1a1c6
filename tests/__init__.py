"""Test package for the mock test trainer.

Core tests drive the session with a fake clock and a manual executor; the
UI smoke tests run headlessly using pygame's dummy video driver.  To run
these tests, execute ``pytest`` from the project root.
"""
