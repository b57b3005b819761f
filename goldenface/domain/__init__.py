"""
Domain layer: data model, ports and the geometric scoring engine
"""
