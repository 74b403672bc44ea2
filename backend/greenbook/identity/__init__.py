"""Identity records, the username index and the workflows built on them."""
