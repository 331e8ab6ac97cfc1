"""
The optimizers of densopt and their building blocks.
"""
