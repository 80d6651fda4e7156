"""Reference backend for smflow: flow storage and node-state relay."""
