"""
WorkSim assessment service: finalization, video evaluation and reporting.
"""
