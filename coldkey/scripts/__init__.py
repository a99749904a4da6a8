# Session components and the coldkey entry point.
