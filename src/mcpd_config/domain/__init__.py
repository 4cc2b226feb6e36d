"""Pure configuration model: values, schema, daemon section, plugins, documents."""
