"""Point cloud and polygon mesh filters, a filter registry, filter groups and managers."""