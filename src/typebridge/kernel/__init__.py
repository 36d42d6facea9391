"""Pure pipeline stages: type atlas, IR, normalizer, reference graph, renderer."""
