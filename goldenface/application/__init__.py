"""
Application layer: orchestration of scoring, matching and statistics
"""
