"""Interactive core: navigation, transition sequencing, zoom and scroll."""
