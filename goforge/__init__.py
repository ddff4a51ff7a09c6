"""goforge -- specification-driven Go project generator.

Turns an entity/project specification into a Go module on disk: struct,
repository, service and handler sources are rendered from templates, merged
onto an archetype skeleton, syntax-checked and compiled with the host Go
toolchain.

Quick usage::

    from goforge.config import Config
    from goforge.pipeline import GenerationPipeline
    from goforge.spec import load_specification

    spec = load_specification("shop.yaml")
    report = await GenerationPipeline(Config()).run(spec)
"""

__version__ = "0.1.0"
