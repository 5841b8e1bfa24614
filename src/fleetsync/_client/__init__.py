"""Page-level operations exposed by :class:`fleetsync.client.FleetClient`."""
