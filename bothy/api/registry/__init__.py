"""npm registry read endpoints: packuments, version documents and tarballs."""
