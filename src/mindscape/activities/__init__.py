"""Activity catalog, daily rotation and play sessions."""
