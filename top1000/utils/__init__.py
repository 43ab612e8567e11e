"""
Utility helpers shared across the Top1000 pipeline.
"""
