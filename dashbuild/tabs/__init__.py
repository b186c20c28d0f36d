"""Tab groups — nested tab containers built from slash-delimited paths."""
