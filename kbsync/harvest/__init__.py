"""
Upstream feeds that produce the reports synced into the knowledge base.
"""
