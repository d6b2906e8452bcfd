"""Marketplace back office: order ingestion and derived financial reports."""
