"""
HTTP API blueprints for StorySlip.
"""
