"""Weather search: location lookup, forecasts, saved search history and exports."""
