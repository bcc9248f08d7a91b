raise RuntimeError("component module failed to import")
