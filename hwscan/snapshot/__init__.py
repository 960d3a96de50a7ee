"""Namespace for snapshot support; it holds no modules."""