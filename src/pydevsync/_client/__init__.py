"""Internal collaborators of :class:`pydevsync.client.DevToolsClient`."""
