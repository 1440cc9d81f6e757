"""Gallery indexer core package.

Modules:
- listing: paginated ImgBed list API client
- path_utils: listed path / URL canonicalization
- classifier: preview vs. original entries, dedupe keys
- assembler: gallery index assembly
- tree: directory tree for the admin browser
- cache: per-domain result cache
- pipeline: the shared run used by the API and the generator
- api: FastAPI app
- config: INI parsing and config objects
- models, repository, database, migrations: per-domain config store
"""
