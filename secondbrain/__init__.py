"""SecondBrain: retrieval-augmented note store."""
