"""
Analytics services: baseline estimation, trend regression, posting-time
analysis, recommendations, prediction caching and the prophecy engine.
"""
