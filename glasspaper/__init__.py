"""
glasspaper - keep your desktop wallpaper fresh with the picture of the day from a web page

glasspaper scrapes a page for an image, downloads it at a size suited to your screen, crops it
to the screen's aspect ratio and sets it as the Gnome desktop background. It can do this once
or every couple of hours, and remembers when the last change happened across restarts.
"""
