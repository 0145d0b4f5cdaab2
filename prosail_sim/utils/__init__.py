"""Utility modules for prosail-sim."""

from prosail_sim.utils.config import Config, get_config

__all__ = ['Config', 'get_config']
