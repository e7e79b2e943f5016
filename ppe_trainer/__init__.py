"""
PPE training service: training-data bookkeeping and confidence enhancement
for a webcam PPE detector.
"""

__version__ = "1.0.0"
