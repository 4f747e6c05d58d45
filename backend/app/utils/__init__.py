"""
Utility functions for CoinPanel.

This package contains:
- datetime_utils: Timezone-aware UTC helpers
"""
