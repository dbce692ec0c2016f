"""
feedcheck/api package marker.
"""
