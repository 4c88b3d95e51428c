"""App Builder: turns Figma plugin configs into React Native apps and web prototypes."""

__version__ = "1.0.0"
