"""
Core terrain viewer modules: coordinates, terrain codec, blend planning,
compositing and the render loop.
"""
