"""particlectl - configure and build ParticleOS images with mkosi."""

__version__ = "0.1.0"
