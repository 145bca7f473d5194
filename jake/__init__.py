"""
JAKE - Local Competitive Intelligence

Takes a local business (name, website, location) and:
1. Discovers nearby competitors through the Maps API
2. Scrapes basic SEO signals from every website involved
3. Produces SWOT insights with Claude
4. Generates a blog post and ad copy
"""

__version__ = "1.0.0"
