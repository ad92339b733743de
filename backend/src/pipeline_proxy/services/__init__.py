"""Service modules: request forwarding, outbound transport and secrets."""
