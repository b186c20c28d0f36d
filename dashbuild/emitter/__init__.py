"""Fragment emitter — renders resolved tab trees into Quarto markdown."""
