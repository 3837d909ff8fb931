"""Domain logic independent of the web and worker layers."""
