"""Worldline timeline visualizer: store, REST service and interactive core."""
