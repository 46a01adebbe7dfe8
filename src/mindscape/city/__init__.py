"""City scene entities handed to the renderer."""
