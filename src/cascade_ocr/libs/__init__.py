"""Low-level building blocks: inference engine adapter and tensor pre/post-processing."""
