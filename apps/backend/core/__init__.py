"""Shared HTTP and text helpers."""
