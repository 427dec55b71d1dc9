"""VaultSort: recommend the best folder for a note."""
