"""Taichi-based stochastic path tracer for sphere scenes.

This package renders scenes of spheres with diffuse, metal and glass
materials through a thin-lens camera, using Monte Carlo path tracing.
Sampling is deterministic per pixel and sample index, so an image depends
only on its seed, never on the number of worker threads.

Subpackages:
    core: Vector utilities, random streams, integrator and rendering loop
    geometry: Sphere primitive and intersection
    materials: Lambertian, metal and dielectric scattering
    scene: Sphere store, scene manager and the showcase scene
    camera: Thin-lens camera with ray generation
    preview: Image conversion and PNG export
"""

__version__ = "0.1.0"
