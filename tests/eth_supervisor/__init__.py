"""Tests for the eth_supervisor package."""
