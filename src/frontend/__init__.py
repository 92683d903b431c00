"""Qt-aware chart state: scales, path generation, render caching and chart contexts."""
