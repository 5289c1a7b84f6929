"""Tabular report builders for costing results."""
