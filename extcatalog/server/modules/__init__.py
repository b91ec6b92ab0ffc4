"""HTTP route modules included by :func:`extcatalog.server.app.create_app`."""
