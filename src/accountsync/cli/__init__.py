"""accountsync command line interface."""
