"""Output side of the engine: data table, field autosave, HDF5 and checkpoints."""
