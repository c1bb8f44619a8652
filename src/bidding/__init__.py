"""Paid-traffic bidding engine for a portfolio of experience sites."""
