"""Mesh Architect web API (Flask)"""
