"""Client-side booking engine: pricing, drafts, availability and hand-off."""
