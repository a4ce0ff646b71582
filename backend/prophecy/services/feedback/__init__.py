"""
Feedback services: feedback storage, accuracy summaries and model calibration.
"""
