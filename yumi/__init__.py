"""Yumi — recipe-sharing social API."""
