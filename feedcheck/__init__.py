"""
feedcheck package marker.
"""
