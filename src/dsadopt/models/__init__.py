"""Data models for categorized component usages and adoption metrics."""
